#!/usr/bin/env python3
"""
Headless cabinet scan.

Loads the scoreboard document, runs the requested scans against the cabinet
and saves the document if anything changed. Useful from cron when the API
server is not running.

Usage:
    python scripts/scan_cabinet.py                 # full scan
    python scripts/scan_cabinet.py tables scores   # selected scans
    python scripts/scan_cabinet.py --duplicates    # report duplicate groups needing work
"""
import argparse
import asyncio
import sys

from scoreboard.core.config import settings
from scoreboard.core.logging import configure_logging, get_logger
from scoreboard.models.duplicates import find_duplicates
from scoreboard.services.clients import VPinStudioClient
from scoreboard.services.sync.orchestrator import ScanOrchestrator
from scoreboard.storage.document import DocumentStore

logger = get_logger("scan_cabinet")

SCANS = ("tables", "scores", "reset", "leaderboard", "activity")


def print_progress(processed: int, total: int) -> None:
    print(f"\r  {processed}/{total}", end="" if processed < total else "\n", flush=True)


async def run(args: argparse.Namespace) -> int:
    store = DocumentStore(args.document or settings.DOCUMENT_PATH, settings.OWNER_INITIALS)
    document = store.load()

    async with VPinStudioClient(base_url=args.url) as cabinet:
        orchestrator = ScanOrchestrator(
            document,
            cabinet,
            store=None if args.dry_run else store,
            progress=print_progress if args.progress else None,
        )

        runners = {
            "tables": orchestrator.scan_tables,
            "scores": orchestrator.scan_scores,
            "reset": orchestrator.reset_scan_scores,
            "leaderboard": orchestrator.scan_leaderboard,
            "activity": orchestrator.scan_activity,
        }

        if args.scans:
            results = [await runners[name]() for name in args.scans]
        else:
            results = await orchestrator.scan_all()

    failed = False
    for result in results:
        status = "✅" if result.success else "❌"
        print(f"{status} {result.kind}: {result.processed} processed, {result.failed} failed, {result.duration_ms}ms")
        for message in result.messages:
            print(f"    {message}")
        failed = failed or not result.success

    if args.duplicates:
        print("\nDuplicate groups needing work:")
        for score_id, group in find_duplicates(document.model):
            if group.disposition.needs_work:
                names = ", ".join(f"{t.name} [{t.web_id}]" for t in group.tables)
                print(f"  {score_id} ({group.disposition.value}): {names}")

    return 1 if failed else 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Scan the pinball cabinet and update the scoreboard document")
    parser.add_argument("scans", nargs="*", help=f"Scans to run: {', '.join(SCANS)} (default: full scan)")
    parser.add_argument("--url", help=f"VPin Studio URL (default: {settings.VPIN_STUDIO_URL})")
    parser.add_argument("--document", help=f"Document path (default: {settings.DOCUMENT_PATH})")
    parser.add_argument("--dry-run", action="store_true", help="Do not save the document")
    parser.add_argument("--progress", action="store_true", help="Print scan progress")
    parser.add_argument("--duplicates", action="store_true", help="Report duplicate groups needing work")
    parser.add_argument("--json-logs", action="store_true", help="JSON log output")
    args = parser.parse_args()
    unknown = [name for name in args.scans if name not in SCANS]
    if unknown:
        parser.error(f"unknown scan: {', '.join(unknown)}")

    configure_logging(level=settings.LOG_LEVEL, json_output=args.json_logs)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
