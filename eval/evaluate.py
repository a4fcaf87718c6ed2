"""
eval/evaluate.py

Consistency report for a JSON-file ledger.

Saves write the case record and the ``case_keys`` index separately, with no
locking, so a ledger can drift: ids listed without a record, records no
index entry points to (lost index appends), duplicate ids, undecodable
entries.  This script reports all of them without modifying the ledger.

Usage:
  python -m eval.evaluate [path/to/ledger.json]

Defaults to the configured ``PLEA_LEDGER_PATH``.
"""

from __future__ import annotations

import logging
import sys
from collections import Counter
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from storage.case_store import INDEX_KEY, case_key, decode_index, decode_record  # noqa: E402
from storage.config import get_settings  # noqa: E402
from storage.contract import JsonFileLedger  # noqa: E402
from storage.errors import DecodeError  # noqa: E402
from storage.models import AnalysisState  # noqa: E402

_RECORD_PREFIX = "case_"


def audit_entries(entries: dict[str, bytes]) -> dict[str, Any]:
    """Compute the consistency report for a raw ledger key space."""
    index_ok = True
    try:
        ids = decode_index(entries.get(INDEX_KEY, b""))
    except DecodeError as exc:
        logger.error("Index is unreadable: %s", exc)
        ids, index_ok = [], False

    counts = Counter(ids)
    duplicates = sorted(i for i, n in counts.items() if n > 1)
    missing = [i for i in dict.fromkeys(ids) if not entries.get(case_key(i))]

    record_ids = [
        k[len(_RECORD_PREFIX):]
        for k in entries
        if k.startswith(_RECORD_PREFIX) and k != INDEX_KEY
    ]
    orphans = sorted(set(record_ids) - set(ids))

    undecodable: list[str] = []
    pending = completed = 0
    for case_id in record_ids:
        try:
            record = decode_record(case_id, entries[case_key(case_id)])
        except DecodeError:
            undecodable.append(case_id)
            continue
        if record.analysis_state == AnalysisState.completed:
            completed += 1
        else:
            pending += 1

    return {
        "index_readable": index_ok,
        "index_size": len(ids),
        "records": len(record_ids),
        "duplicate_ids": duplicates,
        "missing_records": missing,
        "orphan_records": orphans,
        "undecodable_records": sorted(undecodable),
        "pending_analyses": pending,
        "completed_analyses": completed,
    }


def is_consistent(report: dict[str, Any]) -> bool:
    return report["index_readable"] and not any(
        report[k] for k in ("duplicate_ids", "missing_records", "orphan_records", "undecodable_records")
    )


def _print_report(path: Path, report: dict[str, Any]) -> None:
    print(f"\n[PleaBargainFHE Audit] {path}")
    print("-" * 60)
    print(f"  Index readable     : {report['index_readable']}")
    print(f"  Index size         : {report['index_size']}")
    print(f"  Stored records     : {report['records']}")
    print(f"  Pending analyses   : {report['pending_analyses']}")
    print(f"  Completed analyses : {report['completed_analyses']}")
    for label, key in (
        ("Duplicate ids", "duplicate_ids"),
        ("Listed, no record", "missing_records"),
        ("Record, not listed", "orphan_records"),
        ("Undecodable", "undecodable_records"),
    ):
        values = report[key]
        print(f"  {label:<19}: {len(values)}" + (f"  {', '.join(values)}" if values else ""))
    print("-" * 60)
    print("  CONSISTENT" if is_consistent(report) else "  INCONSISTENT")


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    path = Path(args[0]) if args else get_settings().ledger_path

    if not path.exists():
        print(f"\n[PleaBargainFHE Audit] Ledger file not found: {path}\n")
        return 1

    report = audit_entries(JsonFileLedger(path).load())
    _print_report(path, report)
    return 0 if is_consistent(report) else 2


if __name__ == "__main__":
    sys.exit(main())
