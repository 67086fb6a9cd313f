"""Append-only sales history (vendas.json) with atomic writes and cleanup."""
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Optional

import orjson

from src.config import SALES_FILE, config
from src.parse.models import Sale
from src.store.files import atomic_write_json, ensure_file_exists, read_json
from src.store.registry import IdentityRegistry
from src.store.state import StateStore

logger = logging.getLogger(__name__)

KEEP_FIRST = "first"
KEEP_LAST = "last"

LONG_NUMBER_RE = re.compile(r"\b\d{10,}\b")


class HistoryFormatError(ValueError):
    """The history file exists but is not a JSON list of sales."""


@dataclass
class AppendResult:
    appended: int = 0
    accepted: list[Sale] = field(default_factory=list)
    duplicates: int = 0
    discarded: int = 0


@dataclass
class CleanupResult:
    removed: int
    total: int


def _first_long_number(value: Any) -> str:
    match = LONG_NUMBER_RE.search(str(value or ""))
    return match.group(0) if match else ""


def dedupe_key(entry: dict) -> str:
    """
    Key used by cleanup: order number found in id, then in produto,
    then the literal id, then produto|cliente|dataHora.
    """
    from_id = _first_long_number(entry.get("id"))
    if from_id:
        return from_id
    from_produto = _first_long_number(entry.get("produto"))
    if from_produto:
        return from_produto
    if entry.get("id") is not None:
        return str(entry["id"])
    return "|".join(str(entry.get(k) or "").strip() for k in ("produto", "cliente", "dataHora"))


class SalesStore:
    """Persistent history; a single writer is assumed."""

    def __init__(self, sales_file: Path = SALES_FILE):
        self.sales_file = Path(sales_file)

    def load(self) -> list[dict]:
        """Full history, or [] when the file is absent, unreadable or not a list."""
        ensure_file_exists(self.sales_file, [])
        sales = read_json(self.sales_file, [])
        if not isinstance(sales, list):
            logger.warning(f"[STORE] {self.sales_file} is not a JSON list, treating as empty")
            return []
        return sales

    def rehydrate_registry(self, cached_keys: Iterable[str] = ()) -> IdentityRegistry:
        """Rebuild the registry from a full scan of history (plus the cached keys)."""
        history = self.load()
        registry = IdentityRegistry.from_history(history, cached_keys=cached_keys)
        logger.info(f"[STORE] Registry rehydrated from {len(history)} sales ({len(registry)} keys)")
        return registry

    def append(self, batch: Iterable[Sale], registry: IdentityRegistry) -> AppendResult:
        """
        Filter `batch` through the registry and write history + accepted sales.
        The registry only learns the new keys once the file has been replaced.
        """
        batch = list(batch)
        if not batch:
            return AppendResult()

        existing = self.load()
        staged = registry.copy()
        staged.register_history(existing)
        filtered = staged.filter(batch)

        result = AppendResult(
            appended=len(filtered.accepted),
            accepted=filtered.accepted,
            duplicates=len(filtered.duplicates),
            discarded=len(filtered.discarded),
        )
        if filtered.accepted:
            atomic_write_json(self.sales_file, existing + [s.to_record() for s in filtered.accepted])
            logger.info(f"[STORE] Appended {result.appended} sales (history total {len(existing) + result.appended})")

        registry.update(staged)
        return result

    def _read_strict(self) -> list:
        if not self.sales_file.exists():
            return []
        try:
            sales = orjson.loads(self.sales_file.read_bytes())
        except orjson.JSONDecodeError as e:
            raise HistoryFormatError(f"{self.sales_file} is not valid JSON: {e}") from e
        if not isinstance(sales, list):
            raise HistoryFormatError(f"{self.sales_file} is not a JSON list")
        return sales

    def cleanup(
        self,
        keep: str = KEEP_FIRST,
        rewrite_key_cache: bool = False,
        state_store: Optional[StateStore] = None,
    ) -> CleanupResult:
        """
        Keep one entry per dedupe key (earliest with "first", latest with "last")
        and replace the history file. Raises HistoryFormatError on a non-list file.
        """
        if keep not in (KEEP_FIRST, KEEP_LAST):
            raise ValueError(f"keep must be '{KEEP_FIRST}' or '{KEEP_LAST}', got {keep!r}")

        sales = self._read_strict()

        seen: set[str] = set()
        out = []
        ordered = list(reversed(sales)) if keep == KEEP_LAST else sales
        for entry in ordered:
            if not isinstance(entry, dict):
                continue
            key = dedupe_key(entry)
            if not key or key in seen:
                continue
            seen.add(key)
            out.append(entry)
        if keep == KEEP_LAST:
            out.reverse()

        atomic_write_json(self.sales_file, out)
        result = CleanupResult(removed=len(sales) - len(out), total=len(out))
        logger.info(f"[CLEANUP] {self.sales_file.name}: removed {result.removed}, total now {result.total}")

        if rewrite_key_cache:
            state_store = state_store or StateStore()
            state = state_store.load()
            state.remember(
                (str(entry["id"]) for entry in out if entry.get("id")),
                cap=config.KNOWN_IDS_CAP,
            )
            state_store.save(state)
            logger.info(f"[CLEANUP] Key cache rewritten with {len(state.known_ids)} ids")

        return result
