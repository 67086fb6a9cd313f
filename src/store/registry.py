"""
Identity registry: every strong key ever seen, and the accept/reject rule.

A strong key is any non-empty trimmed value among a sale's id, external
platform id, order id and payment id. A candidate is a duplicate as soon as one
of its keys is known, or when its legacy id matches a primary id already in
history. Accepted sales register all their keys at once.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping, Union

from src.parse.models import Sale

logger = logging.getLogger(__name__)

# History aliases carrying identity; "pedidoId" is read for older files.
STRONG_KEY_FIELDS = ("id", "upsellerId", "orderId", "paymentId", "pedidoId")
PRIMARY_ID_FIELDS = ("id", "upsellerId")

SaleLike = Union[Sale, Mapping[str, Any]]


class Verdict(str, Enum):
    ACCEPTED = "accepted"
    DUPLICATE = "duplicate"
    DISCARDED = "discarded"


def _as_record(sale: SaleLike) -> Mapping[str, Any]:
    if isinstance(sale, Sale):
        return sale.model_dump(by_alias=True)
    if isinstance(sale, Mapping):
        return sale
    return {}


def _clean_key(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def strong_keys(sale: SaleLike) -> list[str]:
    """Distinct non-empty identity values of a sale or history entry."""
    record = _as_record(sale)
    keys: dict[str, None] = {}
    for name in STRONG_KEY_FIELDS:
        key = _clean_key(record.get(name))
        if key:
            keys.setdefault(key, None)
    return list(keys)


def primary_ids(sale: SaleLike) -> list[str]:
    record = _as_record(sale)
    return [k for k in (_clean_key(record.get(name)) for name in PRIMARY_ID_FIELDS) if k]


@dataclass
class FilterResult:
    accepted: list[Sale] = field(default_factory=list)
    duplicates: list[Sale] = field(default_factory=list)
    discarded: list[Sale] = field(default_factory=list)


class IdentityRegistry:
    """In-memory set of strong keys, insertion-ordered so the newest can be cached."""

    def __init__(self, keys: Iterable[str] = (), ids: Iterable[str] = ()):
        self._keys: dict[str, None] = {}
        self._primary_ids: set[str] = set()
        for key in keys:
            key = _clean_key(key)
            if key:
                self._keys.setdefault(key, None)
        self._primary_ids.update(k for k in (_clean_key(i) for i in ids) if k)

    @classmethod
    def from_history(
        cls, history: Iterable[SaleLike], cached_keys: Iterable[str] = ()
    ) -> "IdentityRegistry":
        """Rebuild from the full persisted history plus the bounded key cache."""
        registry = cls(keys=cached_keys)
        registry.register_history(history)
        return registry

    def register_history(self, history: Iterable[SaleLike]) -> None:
        count = 0
        for entry in history:
            self._register(entry)
            count += 1
        logger.debug(f"[REGISTRY] Registered {count} history entries ({len(self._keys)} keys)")

    def _register(self, sale: SaleLike) -> None:
        for key in strong_keys(sale):
            self._keys.setdefault(key, None)
        self._primary_ids.update(primary_ids(sale))

    def __contains__(self, key: object) -> bool:
        return _clean_key(key) in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def verdict(self, sale: SaleLike) -> Verdict:
        keys = strong_keys(sale)
        if not keys:
            return Verdict.DISCARDED
        if any(key in self._keys for key in keys):
            return Verdict.DUPLICATE
        legacy = _clean_key(_as_record(sale).get("legacyId"))
        if legacy and legacy in self._primary_ids:
            return Verdict.DUPLICATE
        return Verdict.ACCEPTED

    def admit(self, sale: SaleLike) -> Verdict:
        """Check a candidate and, when accepted, register all of its keys."""
        result = self.verdict(sale)
        if result is Verdict.ACCEPTED:
            self._register(sale)
        return result

    def filter(self, sales: Iterable[Sale]) -> FilterResult:
        """Admit sales in order; later sales sharing a key with an earlier one are duplicates."""
        result = FilterResult()
        for sale in sales:
            verdict = self.admit(sale)
            if verdict is Verdict.ACCEPTED:
                result.accepted.append(sale)
            elif verdict is Verdict.DUPLICATE:
                result.duplicates.append(sale)
            else:
                result.discarded.append(sale)
        return result

    def copy(self) -> "IdentityRegistry":
        clone = IdentityRegistry()
        clone._keys = dict(self._keys)
        clone._primary_ids = set(self._primary_ids)
        return clone

    def update(self, other: "IdentityRegistry") -> None:
        """Take over every key another registry knows (commit of a staged copy)."""
        for key in other._keys:
            self._keys.setdefault(key, None)
        self._primary_ids.update(other._primary_ids)

    def recent_keys(self, limit: int) -> list[str]:
        """The newest `limit` keys, oldest first."""
        keys = list(self._keys)
        return keys[-limit:] if limit > 0 else []
