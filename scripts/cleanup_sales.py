#!/usr/bin/env python3
"""Utility script to remove duplicate entries from the sales history."""
import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.config import SALES_FILE, STATE_FILE
from src.logging_conf import setup_logging
from src.store.sales_store import KEEP_FIRST, KEEP_LAST, HistoryFormatError, SalesStore
from src.store.state import StateStore


def main() -> None:
    parser = argparse.ArgumentParser(description="Deduplicate the sales history file")
    parser.add_argument(
        "--keep",
        choices=[KEEP_FIRST, KEEP_LAST],
        default=KEEP_FIRST,
        help="Which occurrence of a duplicate to keep (default: first)",
    )
    parser.add_argument(
        "--rewrite-state",
        action="store_true",
        help="Rebuild the cached key list in the state file from the cleaned history",
    )
    parser.add_argument("--sales-file", type=Path, default=SALES_FILE, help="History file")
    parser.add_argument("--state-file", type=Path, default=STATE_FILE, help="State file")

    args = parser.parse_args()
    setup_logging()

    store = SalesStore(args.sales_file)
    try:
        result = store.cleanup(
            keep=args.keep,
            rewrite_key_cache=args.rewrite_state,
            state_store=StateStore(args.state_file),
        )
    except HistoryFormatError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Removed {result.removed} duplicate entries")
    print(f"Remaining entries in {args.sales_file}: {result.total}")
    if args.rewrite_state:
        print(f"State file rewritten: {args.state_file}")


if __name__ == "__main__":
    main()
