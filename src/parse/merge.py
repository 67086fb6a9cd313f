"""Unify sales that resolve to the same id within one extraction batch."""
import logging
from typing import Iterable

from src.parse.models import PRODUTOS_SEPARATOR, SCALAR_FIELDS, Sale, unique_codes

logger = logging.getLogger(__name__)


def _item_key(item) -> tuple:
    return (item.sku, item.variacao, item.preco, item.quantidade)


def merge_into(current: Sale, other: Sale) -> Sale:
    """
    Return `current` completed with `other`.
    Populated scalars are never replaced; product codes and items are unioned.
    """
    updates = {}
    for name in SCALAR_FIELDS:
        if not getattr(current, name) and getattr(other, name):
            updates[name] = getattr(other, name)

    produtos = unique_codes(list(current.produtos) + list(other.produtos))
    if produtos != current.produtos:
        updates["produtos"] = produtos
    if len(produtos) > 1:
        updates["produto"] = PRODUTOS_SEPARATOR.join(produtos)

    known = {_item_key(item) for item in current.itens}
    extra = [item for item in other.itens if _item_key(item) not in known]
    if extra:
        updates["itens"] = list(current.itens) + extra

    if not updates:
        return current
    return current.model_copy(update=updates)


def merge_by_id(sales: Iterable[Sale]) -> list[Sale]:
    """Group by id keeping first-seen order; each group collapses to one sale."""
    merged: dict[str, Sale] = {}
    duplicates = 0
    for sale in sales:
        key = sale.id.strip()
        if not key:
            continue
        if key not in merged:
            merged[key] = sale
            continue
        duplicates += 1
        merged[key] = merge_into(merged[key], sale)

    if duplicates:
        logger.debug(f"[MERGE] Collapsed {duplicates} split row(s) into {len(merged)} sale(s)")
    return list(merged.values())
