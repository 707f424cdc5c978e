#!/usr/bin/env python3
"""
Scheduled synchronization script for the statesync engine.

This script performs one sync cycle:
- Optionally queues records from a JSON file ({"record_id": payload, ...})
- Fetches remote state, merges, and uploads the diff
- Logs cycle statistics

Designed to be run on a schedule (e.g., via cron or a systemd timer) for
devices that do not keep a long-running process.

The queue only lives for the duration of the run. When the cycle fails the
changes are not persisted anywhere else: keep the changes file and pass it
again on the next run. The record ids still pending are printed in the
summary and returned as ``pending_record_ids``.

Usage:
    python scripts/scheduled_sync.py [--config CONFIG_PATH] [--changes CHANGES_JSON]
"""

import argparse
import json
import sys
from datetime import datetime
from pathlib import Path

import structlog

from statesync.sync.manager import SyncManager
from statesync.utils.config_loader import ConfigLoader
from statesync.utils.logging_config import configure_logging_from_config

log = structlog.stdlib.get_logger()


def load_changes(changes_path: str) -> dict:
    """Read a JSON object mapping record ids to payloads."""
    data = json.loads(Path(changes_path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"changes file must contain a JSON object: {changes_path}")
    return data


def perform_sync(config_path: str | None = None, changes_path: str | None = None) -> dict:
    """
    Run one synchronization cycle.

    Args:
        config_path: Optional path to configuration file
        changes_path: Optional JSON file of changes to queue before syncing

    Returns:
        Dictionary with sync statistics
    """
    start_time = datetime.now()

    try:
        config = ConfigLoader().load_config(config_path)
        configure_logging_from_config(config.logging)

        log.info("scheduled_sync_started", timestamp=start_time.isoformat())

        manager = SyncManager.from_config(config)
        try:
            if changes_path:
                changes = load_changes(changes_path)
                for record_id, payload in changes.items():
                    manager.queue.enqueue(record_id, payload)
                log.info("changes_loaded", changes_path=changes_path, count=len(changes))

            report = manager.sync_now()
        finally:
            manager.shutdown()

        if report is None:
            raise RuntimeError("a sync cycle was already running")

        stats = {
            "success": report.success,
            "cycle_id": report.cycle_id,
            "phase": report.phase.value,
            "changes_drained": report.changes_drained,
            "records_uploaded": report.records_uploaded,
            "parts_uploaded": report.parts_uploaded,
            "upload_skipped": report.upload_skipped,
            "pending_changes": len(manager.queue),
            "pending_record_ids": sorted({change.id for change in manager.queue.pending()}),
            "errors": report.errors,
            "start_time": start_time.isoformat(),
            "end_time": report.end_time.isoformat(),
            "duration_seconds": (report.end_time - start_time).total_seconds(),
        }

        log.info("scheduled_sync_finished", **stats)
        return stats

    except Exception as e:
        end_time = datetime.now()
        duration = (end_time - start_time).total_seconds()

        log.error("scheduled_sync_failed", error=str(e), duration_seconds=duration)

        return {
            "success": False,
            "errors": [str(e)],
            "start_time": start_time.isoformat(),
            "end_time": end_time.isoformat(),
            "duration_seconds": duration,
        }


def main():
    """Main entry point for scheduled sync script."""
    parser = argparse.ArgumentParser(description="Run one statesync cycle")
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration file",
        default=None,
    )
    parser.add_argument(
        "--changes",
        type=str,
        help="JSON file of record_id -> payload changes to queue before syncing",
        default=None,
    )

    args = parser.parse_args()

    stats = perform_sync(config_path=args.config, changes_path=args.changes)

    print("\n" + "=" * 60)
    print("SYNCHRONIZATION SUMMARY")
    print("=" * 60)

    if stats.get("success"):
        print("Status: SUCCESS")
        print(f"Cycle: {stats.get('cycle_id')}")
        print(f"Changes Drained: {stats.get('changes_drained', 0)}")
        print(f"Records Uploaded: {stats.get('records_uploaded', 0)}")
        print(f"Parts Uploaded: {stats.get('parts_uploaded', 0)}")
    else:
        print("Status: FAILED")
        for error in stats.get("errors", []):
            print(f"Error: {error}")
        if "pending_changes" in stats:
            print(f"Pending Changes: {stats['pending_changes']}")
        if stats.get("pending_record_ids"):
            print(f"Pending Records: {', '.join(stats['pending_record_ids'])}")
            print("Keep the changes file and pass it again with --changes to retry.")

    print(f"Duration: {stats.get('duration_seconds', 0):.2f} seconds")
    print("=" * 60)

    sys.exit(0 if stats.get("success") else 1)


if __name__ == "__main__":
    main()
