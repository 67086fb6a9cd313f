"""Counters for extraction cycles."""
import time
import logging
from collections import defaultdict
from typing import Dict

logger = logging.getLogger(__name__)


class Metrics:
    """Track cycle outcomes across the life of the process."""

    def __init__(self):
        self.start_time = time.time()
        self.counters: Dict[str, int] = defaultdict(int)

    def increment(self, key: str, amount: int = 1) -> None:
        """Increment a counter."""
        self.counters[key] = self.counters.get(key, 0) + amount

    def record_cycle(self, rows: int, sales: int, appended: int, duplicates: int, discarded: int) -> None:
        self.increment("cycles")
        self.increment("rows", rows)
        self.increment("sales", sales)
        self.increment("appended", appended)
        self.increment("duplicates", duplicates)
        self.increment("discarded", discarded)

    def report(self) -> None:
        """Log current metrics."""
        elapsed = time.time() - self.start_time
        logger.info(
            f"Cycles: {self.counters.get('cycles', 0)} "
            f"(failed: {self.counters.get('failed_cycles', 0)}) | "
            f"Rows: {self.counters.get('rows', 0)} | "
            f"Appended: {self.counters.get('appended', 0)} | "
            f"Duplicates: {self.counters.get('duplicates', 0)} | "
            f"Discarded: {self.counters.get('discarded', 0)} | "
            f"Uptime: {elapsed / 60:.1f}m"
        )

    def get_summary(self) -> Dict:
        """Get summary statistics."""
        return {
            "cycles": self.counters.get("cycles", 0),
            "failed_cycles": self.counters.get("failed_cycles", 0),
            "rows": self.counters.get("rows", 0),
            "sales": self.counters.get("sales", 0),
            "appended": self.counters.get("appended", 0),
            "duplicates": self.counters.get("duplicates", 0),
            "discarded": self.counters.get("discarded", 0),
            "elapsed_seconds": time.time() - self.start_time,
        }
