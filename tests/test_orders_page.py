"""Tests for order-listing page parsing and the snapshot accessor."""
import asyncio

import pytest
from src.fetch.accessor import ExtractionError, HtmlSnapshotAccessor, go_to_first_page
from src.parse.assembler import assemble_sales
from src.parse.orders_page import parse_orders_page

BORDERED_PAGE = """
<html><body><table><tbody>
<tr class="top_row"><td>
  <div class="tr_top_content"><div class="mr_10">
    <span title="Loja A">Loja A</span><span>Mercado Libre</span>
  </div></div>
  <a href="#">#up1a2b3c</a>
</td></tr>
<tr class="my_table_border">
  <td>
    <div class="ml_12 flex mb_20">
      <img class="img_local" src="a.jpg">
      <div class="flex_1">
        <div class="line_overflow_2"><a title="SKU-001">SKU-001</a></div>
        <div>Azul M</div>
        <b>x2</b>
        <div>R$ 29,99</div>
      </div>
    </div>
  </td>
  <td>R$ 59,98</td>
  <td><span title="Maria Silva">Maria Silva</span><div class="f_gray_8c">São Paulo SP</div></td>
  <td>Aguardando envio</td>
  <td>
    <div class="mb_5"><div>Pago</div><div>04/02/2026 13:45</div></div>
    <div class="mb_5"><div>Expira em</div><div>10/02/2026 09:00</div></div>
  </td>
  <td title="Coleta">Coleta</td>
</tr>
</tbody></table></body></html>
"""


def test_parse_bordered_row():
    """Test header id, items and metadata of an order row."""
    blocks = parse_orders_page(BORDERED_PAGE)
    assert len(blocks) == 1
    block = blocks[0]

    assert block.structural_id == "#UP1A2B3C"
    assert block.product_codes == ["SKU-001"]
    assert len(block.cells) == 6

    item = block.items[0]
    assert item.sku == "SKU-001"
    assert item.quantidade == "x2"
    assert item.preco == "R$ 29,99"
    assert item.variacao == "Azul M"
    assert item.imagem == "a.jpg"

    assert block.meta["conta"] == "Loja A"
    assert block.meta["plataforma"] == "Mercado Libre"
    assert block.meta["cliente"] == "Maria Silva"
    assert block.meta["cidadeUf"] == "São Paulo SP"
    assert block.meta["pago"] == "04/02/2026 13:45"
    assert block.meta["expira"] == "10/02/2026 09:00"
    assert block.meta["envio"] == "Coleta"


def test_bordered_row_assembles_sale():
    """Test the header id becomes the sale id."""
    sale = assemble_sales(parse_orders_page(BORDERED_PAGE))[0]
    assert sale.id == "#UP1A2B3C"
    assert sale.upseller_id == "#UP1A2B3C"
    assert sale.produtos == ["SKU-001"]
    assert sale.data_hora == "04/02/2026 13:45"
    assert sale.expira == "10/02/2026 09:00"


def test_generic_table_fallback():
    """Test plain table rows become one block per row."""
    html = (
        "<table><tbody>"
        "<tr><td>19936CPA Blusa R$ 29,99</td><td>12345678901</td><td>Pago 04/02/2026 13:45</td></tr>"
        "<tr><td></td></tr>"
        "</tbody></table>"
    )
    blocks = parse_orders_page(html)
    assert len(blocks) == 1
    assert blocks[0].cells == ["19936CPA Blusa R$ 29,99", "12345678901", "Pago 04/02/2026 13:45"]
    assert blocks[0].structural_id is None


def test_list_fallback():
    """Test list items are read as unsegmented blocks."""
    blocks = parse_orders_page("<ul><li>Pedido #123456 | Ana | Caneca | R$ 10,00</li></ul>")
    assert [b.cells for b in blocks] == [["Pedido #123456 | Ana | Caneca | R$ 10,00"]]


def test_empty_page():
    """Test empty content has no rows."""
    assert parse_orders_page("") == []


def test_snapshot_accessor_pages(tmp_path):
    """Test pages are read in name order and the accessor can rewind."""
    (tmp_path / "page-1.html").write_text(BORDERED_PAGE, encoding="utf-8")
    (tmp_path / "page-2.html").write_text("<ul><li>Pedido #123456 | Ana</li></ul>", encoding="utf-8")
    accessor = HtmlSnapshotAccessor.from_directory(tmp_path)

    async def walk():
        first = await accessor.get_row_blocks()
        assert await accessor.advance_page() is True
        second = await accessor.get_row_blocks()
        assert await accessor.advance_page() is False
        assert await go_to_first_page(accessor) is True
        return first, second

    first, second = asyncio.run(walk())
    assert first[0].structural_id == "#UP1A2B3C"
    assert second[0].cells == ["Pedido #123456 | Ana"]
    assert accessor.current_page.name == "page-1.html"


def test_snapshot_accessor_missing_file(tmp_path):
    """Test an unreadable page is an extraction error."""
    accessor = HtmlSnapshotAccessor([tmp_path / "missing.html"])
    with pytest.raises(ExtractionError):
        asyncio.run(accessor.get_row_blocks())
