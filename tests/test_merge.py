"""Tests for merging split rows of the same sale."""
from src.parse.merge import merge_by_id, merge_into
from src.parse.models import SCALAR_FIELDS, Sale, SaleItem


def test_first_non_empty_wins():
    """Test populated fields are never overwritten."""
    first = Sale(id="A1", produto="Blusa", valor=None, cliente="Maria")
    second = Sale(id="A1", produto="Outra", valor="R$ 10,00", cliente="Joana", data_hora="01/01/2026 10:00")
    merged = merge_into(first, second)
    assert merged.produto == "Blusa"
    assert merged.cliente == "Maria"
    assert merged.valor == "R$ 10,00"
    assert merged.data_hora == "01/01/2026 10:00"


def test_merge_unions_product_codes_and_items():
    """Test products and items from both rows are kept once."""
    first = Sale(id="A1", produtos=["SKU1"], itens=[SaleItem(sku="SKU1", quantidade="x1")])
    second = Sale(
        id="A1",
        produtos=["SKU2", "SKU1"],
        itens=[SaleItem(sku="SKU1", quantidade="x1"), SaleItem(sku="SKU2", quantidade="x2")],
    )
    merged = merge_into(first, second)
    assert merged.produtos == ["SKU1", "SKU2"]
    assert merged.produto == "SKU1 | SKU2"
    assert [item.sku for item in merged.itens] == ["SKU1", "SKU2"]


def test_merge_returns_same_object_when_nothing_new():
    """Test merging a subset changes nothing."""
    first = Sale(id="A1", produto="Blusa", valor="R$ 10,00")
    assert merge_into(first, Sale(id="A1", produto="Blusa")) is first


def test_merge_by_id_keeps_first_seen_order():
    """Test groups collapse and keep the order of their first row."""
    sales = [
        Sale(id="B", produto="Caneca"),
        Sale(id="A", produto="Blusa"),
        Sale(id="B", valor="R$ 5,00"),
    ]
    merged = merge_by_id(sales)
    assert [s.id for s in merged] == ["B", "A"]
    assert merged[0].valor == "R$ 5,00"
    assert merged[0].produto == "Caneca"


def test_merge_by_id_single_pass_is_idempotent():
    """Test merging an already merged batch changes nothing."""
    merged = merge_by_id([Sale(id="A", produto="Blusa"), Sale(id="A", cliente="Ana")])
    assert merge_by_id(merged) == merged


def test_merge_order_does_not_matter_for_disjoint_fields():
    """Test merging either way gives the same scalars when only one side has each field."""
    a = Sale(id="A1", produto="Blusa", cliente="Maria", conta="Loja A")
    b = Sale(id="A1", valor="R$ 10,00", data_hora="01/01/2026 10:00", pedido_numero="12345678901", envio="Coleta")
    ab = merge_into(a, b)
    ba = merge_into(b, a)
    for name in SCALAR_FIELDS:
        assert getattr(ab, name) == getattr(ba, name), name
    assert ab.valor == "R$ 10,00"
    assert ba.produto == "Blusa"
