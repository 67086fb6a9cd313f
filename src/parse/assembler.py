"""Build canonical Sale records from row blocks and resolve their identity."""
import logging
from typing import Iterable, Optional

from src.parse.classifier import classify_row
from src.parse.models import PRODUTOS_SEPARATOR, RowBlock, RowFields, Sale, unique_codes
from src.parse.text_utils import clean_text, content_fingerprint, normalize_money_text

logger = logging.getLogger(__name__)

# RowBlock.meta keys copied onto the sale when the classifier left them empty
META_FIELDS = {
    "cidadeUf": "cidade_uf",
    "pago": "pago",
    "ordenado": "ordenado",
    "expira": "expira",
    "envio": "envio",
    "conta": "conta",
    "plataforma": "plataforma",
}


def _or_none(value: Optional[str]) -> Optional[str]:
    value = clean_text(value)
    return value or None


def derive_identity(fields: RowFields) -> str:
    """Identity from the row text alone: order number, product code, then content fingerprint."""
    if fields.pedido_numero:
        return fields.pedido_numero
    if fields.product_code:
        return fields.product_code
    return content_fingerprint(fields.produto, fields.valor, fields.cliente, fields.data_hora)


def resolve_identity(structural_id: Optional[str], fields: RowFields) -> tuple[str, Optional[str]]:
    """
    Return (id, legacy_id).
    A structural id attached by the accessor always wins; the text-derived id is
    then kept as legacy_id so older history recorded under it still dedupes.
    """
    derived = derive_identity(fields)
    structural = clean_text(structural_id)
    if not structural:
        return derived, None
    legacy = derived if derived and derived != structural else None
    return structural, legacy


def assemble_sale(block: RowBlock) -> Optional[Sale]:
    """Assemble one Sale, or None when the row carries nothing usable."""
    fields = classify_row(block.cells)
    meta = {k: clean_text(v) for k, v in (block.meta or {}).items() if clean_text(v)}

    if not fields.cliente and meta.get("cliente"):
        fields.cliente = meta["cliente"]
    if not fields.valor and meta.get("valor"):
        fields.valor = normalize_money_text(meta["valor"])
    if not fields.data_hora:
        fields.data_hora = meta.get("pago") or meta.get("ordenado") or ""

    items = [item for item in block.items if not item.is_empty()]
    produtos = unique_codes(block.product_codes or [item.sku for item in items])

    structural_id = clean_text(block.structural_id)
    if fields.is_empty() and not structural_id and not produtos:
        logger.debug(f"[ASSEMBLE] Discarding row with no usable fields: {block.cells[:3]}")
        return None

    sale_id, legacy_id = resolve_identity(structural_id, fields)

    produto = fields.produto
    if len(produtos) > 1 or (not produto and produtos):
        produto = PRODUTOS_SEPARATOR.join(produtos)

    sale = Sale(
        id=sale_id,
        legacy_id=legacy_id,
        upseller_id=structural_id or None,
        pedido_numero=_or_none(fields.pedido_numero),
        product_code=_or_none(fields.product_code),
        produto=_or_none(produto),
        produtos=produtos,
        valor=_or_none(fields.valor),
        cliente=_or_none(fields.cliente),
        data_hora=_or_none(fields.data_hora),
        itens=items,
        **{attr: meta.get(key) for key, attr in META_FIELDS.items()},
    )
    return sale


def assemble_sales(blocks: Iterable[RowBlock]) -> list[Sale]:
    """Assemble every usable row of one page, in row order."""
    sales = []
    discarded = 0
    for block in blocks:
        sale = assemble_sale(block)
        if sale is None:
            discarded += 1
            continue
        sales.append(sale)
    if discarded:
        logger.debug(f"[ASSEMBLE] {discarded} row(s) had nothing to assemble")
    return sales
