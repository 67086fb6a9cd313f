"""Turn a saved order-listing page (HTML snapshot) into row blocks."""
import logging
import re
from typing import Optional

from selectolax.parser import HTMLParser, Node

from src.parse.models import RowBlock, SaleItem
from src.parse.text_utils import clean_text, extract_first_money, parse_quantity

logger = logging.getLogger(__name__)

MAX_BORDERED_ROWS = 400
MAX_TABLES = 8
MAX_ROWS_PER_TABLE = 200
TOP_ROW_LOOKBACK = 5

UPSELLER_ID_RE = re.compile(r"#UP[0-9A-Z]+", re.IGNORECASE)


def _has_class(node: Optional[Node], name: str) -> bool:
    if node is None or node.tag == "-text":
        return False
    return name in (node.attributes.get("class") or "").split()


def _node_text(node: Optional[Node]) -> str:
    """Visible text with one line per text node, like innerText."""
    if node is None:
        return ""
    return node.text(deep=True, separator="\n", strip=True)


def _prev_element(node: Node) -> Optional[Node]:
    prev = node.prev
    while prev is not None and prev.tag == "-text":
        prev = prev.prev
    return prev


def find_top_row(row: Node) -> Optional[Node]:
    """The `.top_row` header rendered a few siblings before an order row."""
    prev = _prev_element(row)
    for _ in range(TOP_ROW_LOOKBACK):
        if prev is None:
            return None
        if _has_class(prev, "top_row"):
            return prev
        prev = _prev_element(prev)
    return None


def extract_upseller_id(top_row: Optional[Node]) -> str:
    if top_row is None:
        return ""
    anchor = top_row.css_first("a")
    text = clean_text(_node_text(anchor) or _node_text(top_row))
    match = UPSELLER_ID_RE.search(text)
    return match.group(0).upper() if match else ""


def parse_top_row_meta(top_row: Optional[Node]) -> dict[str, str]:
    """Account name and marketplace shown in the order header."""
    meta: dict[str, str] = {}
    if top_row is None:
        return meta

    conta_el = top_row.css_first(".tr_top_content .mr_10 span[title]")
    if conta_el is not None:
        meta["conta"] = clean_text(conta_el.attributes.get("title") or _node_text(conta_el))

    platforms = [
        clean_text(_node_text(span))
        for span in top_row.css(".tr_top_content .mr_10 span")
        if clean_text(_node_text(span))
    ]
    if platforms:
        meta["plataforma"] = next(
            (p for p in platforms if re.search(r"mercado\s*libre", p, re.IGNORECASE)),
            platforms[-1],
        )
    return {k: v for k, v in meta.items() if v}


def parse_items(product_td: Optional[Node]) -> list[SaleItem]:
    """Line items of the product column (one block per SKU)."""
    if product_td is None:
        return []

    items = []
    for block in product_td.css(".ml_12.flex.mb_20"):
        img = block.css_first("img.img_local")
        imagem = ""
        if img is not None:
            imagem = clean_text(img.attributes.get("src") or img.attributes.get("data-src") or "")

        sku_el = block.css_first(".line_overflow_2 a[title]")
        sku = clean_text(sku_el.attributes.get("title") or _node_text(sku_el)) if sku_el is not None else ""
        qty_el = block.css_first("b")
        quantidade = parse_quantity(_node_text(qty_el)) if qty_el is not None else ""
        preco = extract_first_money(_node_text(block))

        variacao = ""
        flex = block.css_first(".flex_1")
        if flex is not None:
            for child in flex.iter(include_text=False):
                text = clean_text(_node_text(child))
                if text and "R$" not in text and not parse_quantity(text) and text != sku:
                    variacao = text
                    break

        item = SaleItem(sku=sku, preco=preco, quantidade=quantidade, variacao=variacao, imagem=imagem or None)
        if not item.is_empty():
            items.append(item)

    if not items:
        for anchor in product_td.css(".line_overflow_2 a[title]"):
            sku = clean_text(anchor.attributes.get("title") or _node_text(anchor))
            if sku:
                items.append(SaleItem(sku=sku))

    return items


def parse_status_blocks(status_td: Optional[Node]) -> dict[str, str]:
    """Label/value pairs of the status column: pago, expira, ordenado."""
    info: dict[str, str] = {}
    if status_td is None:
        return info
    for block in status_td.css(".mb_5"):
        divs = [child for child in block.iter(include_text=False) if child.tag == "div"]
        if len(divs) < 2:
            continue
        label = clean_text(_node_text(divs[0])).lower()
        value = clean_text(_node_text(divs[1]))
        if not label or not value:
            continue
        if "pag" in label:
            info["pago"] = value
        elif "expira" in label:
            info["expira"] = value
        elif "orden" in label:
            info["ordenado"] = value
    return info


def parse_bordered_row(row: Node) -> Optional[RowBlock]:
    top_row = find_top_row(row)
    tds = row.css("td")
    cells = [_node_text(td) for td in tds if _node_text(td)]
    if not cells:
        text = _node_text(row)
        if not text:
            return None
        cells = [text]

    meta = parse_top_row_meta(top_row)
    product_td = tds[0] if tds else None
    items = parse_items(product_td)
    product_codes = [item.sku for item in items if item.sku]

    if len(tds) > 2:
        client_el = tds[2].css_first("span[title]")
        if client_el is not None:
            meta["cliente"] = clean_text(client_el.attributes.get("title") or _node_text(client_el))
        city_el = tds[2].css_first(".f_gray_8c")
        if city_el is not None:
            meta["cidadeUf"] = clean_text(_node_text(city_el))
    if len(tds) > 4:
        meta.update(parse_status_blocks(tds[4]))
    if len(tds) > 5:
        titled = tds[5].css_first("[title]")
        envio = tds[5].attributes.get("title") or (titled.attributes.get("title") if titled is not None else "")
        meta["envio"] = clean_text(envio or _node_text(tds[5]))

    return RowBlock(
        cells=cells,
        structural_id=extract_upseller_id(top_row) or None,
        product_codes=product_codes,
        items=items,
        meta={k: v for k, v in meta.items() if v},
    )


def parse_orders_page(html_content: str) -> list[RowBlock]:
    """
    Extract row blocks from an order-listing page.
    Prefers `.my_table_border` order rows; falls back to generic tables, then lists.
    """
    if not html_content:
        return []

    parser = HTMLParser(html_content)

    bordered = parser.css(".my_table_border")
    if bordered:
        blocks = []
        for row in bordered[:MAX_BORDERED_ROWS]:
            block = parse_bordered_row(row)
            if block is not None:
                blocks.append(block)
        logger.debug(f"[ORDERS_PAGE] source=my_table_border rows={len(blocks)}")
        return blocks

    blocks = []
    for table in parser.css("table")[:MAX_TABLES]:
        for tr in table.css("tbody tr")[:MAX_ROWS_PER_TABLE]:
            cells = [clean_text(_node_text(td)) for td in tr.css("td")]
            cells = [c for c in cells if c]
            if cells:
                blocks.append(RowBlock(cells=cells))
            else:
                row_text = clean_text(_node_text(tr))
                if row_text:
                    blocks.append(RowBlock(cells=[row_text]))

    if not blocks:
        for el in parser.css("[role='row'], li, .row")[:MAX_ROWS_PER_TABLE]:
            text = clean_text(_node_text(el))
            if text:
                blocks.append(RowBlock(cells=[text]))

    logger.debug(f"[ORDERS_PAGE] source=fallback rows={len(blocks)}")
    return blocks
