"""Reporting interface and the JSON report written after new sales arrive."""
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol, Sequence

from src.config import REPORTS_DIR
from src.parse.text_utils import parse_money_to_number
from src.store.files import atomic_write_json

logger = logging.getLogger(__name__)


class Reporter(Protocol):
    """Renders the ordered history for a report date and returns the artifact path."""

    def render(self, sales: Sequence[dict[str, Any]], report_date: datetime) -> Path: ...


def format_date_for_filename(date: datetime) -> str:
    return date.strftime("%Y-%m-%d-%H-%M")


class JsonReportWriter:
    """One entry per sale in the order given, plus a total of the parsed amounts."""

    content_type = "application/json"

    def __init__(self, reports_dir: Path = REPORTS_DIR):
        self.reports_dir = Path(reports_dir)
        self.reports_dir.mkdir(parents=True, exist_ok=True)

    def render(self, sales: Sequence[dict[str, Any]], report_date: datetime) -> Path:
        amounts = [parse_money_to_number(s.get("valor")) for s in sales]
        report = {
            "date": report_date.isoformat(),
            "count": len(sales),
            "total": round(sum(a for a in amounts if a is not None), 2),
            "sales": list(sales),
        }
        out_path = self.reports_dir / f"relatorio-vendas-{format_date_for_filename(report_date)}.json"
        atomic_write_json(out_path, report)
        logger.info(f"[REPORT] Wrote {out_path} ({len(sales)} sales)")
        return out_path
