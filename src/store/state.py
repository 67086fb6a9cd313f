"""Run state persisted between cycles (bounded known-id cache and timestamps)."""
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from src.config import STATE_FILE, config
from src.store.files import atomic_write_json, ensure_file_exists, read_json

logger = logging.getLogger(__name__)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class RunState(BaseModel):
    """knownIds is capped; the oldest entries are evicted first."""

    model_config = ConfigDict(populate_by_name=True)

    known_ids: list[str] = Field(default_factory=list, alias="knownIds")
    last_run_at: Optional[str] = Field(default=None, alias="lastRunAt")
    last_report_at: Optional[str] = Field(
        default=None,
        alias="lastReportAt",
        validation_alias=AliasChoices("lastReportAt", "lastPdfAt"),
    )

    @field_validator("known_ids", mode="before")
    @classmethod
    def _coerce_ids(cls, value):
        if not isinstance(value, list):
            return []
        return [str(v) for v in value if v is not None and str(v).strip()]

    @field_validator("last_run_at", "last_report_at", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value):
        return value if isinstance(value, str) else None

    def remember(self, keys: Iterable[str], cap: Optional[int] = None) -> None:
        """Replace the cache with `keys`, keeping only the newest `cap` entries."""
        cap = cap or config.KNOWN_IDS_CAP
        self.known_ids = list(keys)[-cap:]

    def seconds_since_report(self, now: Optional[datetime] = None) -> Optional[float]:
        if not self.last_report_at:
            return None
        try:
            last = datetime.fromisoformat(self.last_report_at.replace("Z", "+00:00"))
        except ValueError:
            return None
        if last.tzinfo is None:
            last = last.replace(tzinfo=timezone.utc)
        now = now or datetime.now(timezone.utc)
        return (now - last).total_seconds()


class StateStore:
    """Reads and atomically writes state.json."""

    def __init__(self, state_file: Path = STATE_FILE):
        self.state_file = Path(state_file)

    def _default(self) -> dict:
        return RunState().model_dump(by_alias=True)

    def load(self) -> RunState:
        ensure_file_exists(self.state_file, self._default())
        raw = read_json(self.state_file, self._default())
        if not isinstance(raw, dict):
            logger.warning(f"[STATE] {self.state_file} is not an object, using defaults")
            return RunState()
        try:
            return RunState.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"[STATE] Invalid state file {self.state_file}: {e}")
            return RunState()

    def save(self, state: RunState) -> None:
        atomic_write_json(self.state_file, state.model_dump(by_alias=True))
