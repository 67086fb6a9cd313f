"""Tests for order row classification."""
import pytest
from src.parse.classifier import (
    ROLE_CLIENT,
    ROLE_MONEY,
    ROLE_ORDER,
    ROLE_PRODUCT,
    ROLE_STATUS,
    assign_roles,
    classify_row,
    extract_client,
    extract_product,
    is_money_cell,
    is_product_cell,
)

ROW = [
    "19936CPA Blusa Feminina R$ 29,99",
    "12345678901",
    "04/02/2026 13:45 Pago",
    "Maria Silva, São Paulo SP",
]


def test_classify_segmented_row():
    """Test a four-cell row is split into every field."""
    fields = classify_row(ROW)
    assert fields.product_code == "19936CPA"
    assert fields.produto == "19936CPA Blusa Feminina"
    assert fields.valor == "R$ 29,99"
    assert fields.pedido_numero == "12345678901"
    assert fields.data_hora == "04/02/2026 13:45"
    assert fields.cliente == "Maria Silva São Paulo SP"


def test_classification_ignores_cell_order():
    """Test the same cells in another order give the same fields."""
    assert classify_row(list(reversed(ROW))) == classify_row(ROW)


def test_product_cell_is_not_money():
    """Test a marked product cell is never claimed as the amount."""
    assert is_product_cell(ROW[0]) is True
    assert is_money_cell(ROW[0]) is False
    assert is_money_cell("R$ 29,99") is True


def test_product_code_needs_a_digit():
    """Test plain words are not product codes."""
    assert is_product_cell("Camiseta R$ 10,00") is False
    assert is_product_cell("AB12 Camiseta x2") is True


def test_no_cell_claimed_twice():
    """Test each cell carries at most one role."""
    cells = ["R$ 10,00 Pago 01/01/2026 10:00", "Ana Paula", "Caneca"]
    roles = assign_roles(cells)
    assert roles[ROLE_MONEY] == cells[0]
    assert ROLE_STATUS not in roles
    assert roles[ROLE_CLIENT] == "Ana Paula"
    assert roles[ROLE_PRODUCT] == "Caneca"
    assert len(set(roles.values())) == len(roles)


def test_status_precedes_order():
    """Test a cell with a date and a long number is a status cell."""
    cells = ["12345678901 01/02/2026 10:00", "Ana Paula", "Caneca R$ 5,00"]
    roles = assign_roles(cells)
    assert roles[ROLE_STATUS] == cells[0]
    assert ROLE_ORDER not in roles


def test_date_searched_in_whole_row_without_status_cell():
    """Test the row text is used for the date when no status cell was claimed."""
    fields = classify_row(["R$ 10,00 Pago 01/01/2026 10:00", "Ana Paula", "Caneca"])
    assert fields.valor == "R$ 10,00"
    assert fields.data_hora == "01/01/2026 10:00"
    assert fields.produto == "Caneca"


def test_expiry_date_not_used():
    """Test the expiry timestamp is ignored when a paid one exists."""
    cells = ROW[:2] + ["Expira em 10/02/2026 09:00\nOrdenado 03/02/2026 10:00"] + ROW[3:]
    assert classify_row(cells).data_hora == "03/02/2026 10:00"


def test_expiry_line_after_paid_date_ignored():
    """Test a date written before its paid label wins over a later expiry line."""
    cells = ROW[:2] + ["04/02/2026 13:45 Pago\nExpira em 10/02/2026 09:00"] + ROW[3:]
    assert classify_row(cells).data_hora == "04/02/2026 13:45"


def test_block_expiry_segment_ignored():
    """Test the unsegmented path skips the expiry timestamp."""
    fields = classify_row(["Pedido #123456 | Expira em 10/02/2026 09:00 | Pago 04/02/2026 13:45 | Ana"])
    assert fields.data_hora == "04/02/2026 13:45"


def test_order_subpedido_keyword():
    """Test the sub-order keyword marks an order cell."""
    roles = assign_roles(["Subpedido", "Ana Paula", "AB12 Caneca x1"])
    assert roles[ROLE_ORDER] == "Subpedido"


def test_classify_block_with_separators():
    """Test an unsegmented pipe-separated row."""
    fields = classify_row(["Pedido #123456 | Maria Souza | Camiseta Azul | R$ 49,90 | 05/02/2026 10:30"])
    assert fields.pedido_numero == "123456"
    assert fields.cliente == "Maria Souza"
    assert fields.produto == "Camiseta Azul"
    assert fields.valor == "R$ 49,90"
    assert fields.data_hora == "05/02/2026 10:30"


def test_classify_block_with_labels():
    """Test label-prefixed fragments are read by label."""
    fields = classify_row(["Pedido: 98765432\nCliente: João Lima\nProduto: Tênis X", "Valor: R$ 199,90"])
    assert fields.pedido_numero == "98765432"
    assert fields.cliente == "João Lima"
    assert fields.produto == "Tênis X"
    assert fields.valor == "R$ 199,90"
    assert fields.data_hora == ""


@pytest.mark.parametrize("cells", [None, [], ["", "   "]])
def test_classify_empty_row(cells):
    """Test empty rows give empty fields."""
    assert classify_row(cells).is_empty()


def test_extract_product_multiline():
    """Test code, name and quantity on separate lines."""
    code, produto = extract_product("19936CPA\nBlusa Feminina\nx2\nR$ 59,98")
    assert code == "19936CPA"
    assert produto == "19936CPA Blusa Feminina"


def test_extract_client_keeps_three_fragments():
    """Test name and location fragments are capped."""
    assert extract_client("Ana\nCampinas, SP\nBrasil") == "Ana Campinas SP"
