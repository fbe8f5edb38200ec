"""
Import local test cases into Xray from the command line.

Records are processed one after another. New records are created through the
bulk import API, records that already carry a Jira key are updated in place;
both are then linked and their links validated.

Usage examples:
  python scripts/import_test_cases.py 3 4 7
  python scripts/import_test_cases.py --all-ready

Exit status is 1 when any record failed to import, 0 otherwise (records
imported with link warnings still count as imported).
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Dict, List

# Ensure we can import the package when running as a script
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from xray_importer.core.database import SessionLocal, create_tables  # noqa: E402
from xray_importer.core.dependencies import container  # noqa: E402
from xray_importer.models.linking import BatchItemResult, ProgressState, StepStatus  # noqa: E402
from xray_importer.models.schemas import TestCaseStatus  # noqa: E402


class ProgressPrinter:
    """Prints one line per finished step as progress snapshots arrive"""

    def __init__(self):
        self._printed: Dict[int, int] = {}

    def __call__(self, record_id: int, state: ProgressState) -> None:
        last = self._printed.get(record_id, 0)
        for index in range(last, min(state.current_index, len(state.steps))):
            step = state.steps[index]
            mark = "!" if step.status == StepStatus.FAILED else "x"
            suffix = f" ({step.error})" if step.error else ""
            print(f"  [{mark}] #{record_id} {step.label}{suffix}")
        self._printed[record_id] = max(last, state.current_index)


def print_summary(results: List[BatchItemResult]) -> None:
    print("Summary:")
    for result in results:
        if not result.succeeded:
            print(f"  #{result.record_id}: FAILED - {result.error}")
        elif result.has_errors:
            print(f"  #{result.record_id}: {result.key} imported with warnings")
            if result.error:
                print(f"      {result.error}")
            for failed in (result.progress.failed_items if result.progress else []):
                print(f"      {failed.label}: {failed.error}")
        else:
            print(f"  #{result.record_id}: {result.key} imported")


async def run(record_ids: List[int], all_ready: bool) -> List[BatchItemResult]:
    session = SessionLocal()
    try:
        coordinator = container.import_coordinator(session)
        if all_ready:
            records = await coordinator.repository.get_all(limit=10_000)
            record_ids = record_ids + [r.id for r in records if r.status == TestCaseStatus.READY]
        if not record_ids:
            return []
        return await coordinator.run_batch(record_ids, on_progress=ProgressPrinter())
    finally:
        session.close()


def main():
    parser = argparse.ArgumentParser(description="Import local test cases into Xray")
    parser.add_argument("record_ids", nargs="*", type=int, help="Local test case ids, imported in order")
    parser.add_argument("--all-ready", action="store_true", help="Also import every test case with status 'ready'")
    args = parser.parse_args()

    if not args.record_ids and not args.all_ready:
        parser.error("give at least one record id or --all-ready")

    create_tables()
    results = asyncio.run(run(list(args.record_ids), args.all_ready))
    if not results:
        print("Nothing to import.")
        return
    print_summary(results)
    if any(not r.succeeded for r in results):
        sys.exit(1)


if __name__ == "__main__":
    main()
