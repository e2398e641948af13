#!/usr/bin/env python3
"""
Re-sync availability for one provider: a single date, or a date range with one sync log row per date.
Without --date/--start/--end the range runs from the provider's creation date through today.
Run: cd backend && python scripts/sync_provider_availability.py <provider_id> [--date YYYY-MM-DD | --start YYYY-MM-DD --end YYYY-MM-DD]
"""
import argparse
import logging
import sys
from datetime import date
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from caresync.db.session import SessionLocal
from caresync.services.availability.backfill import sync_provider_availability_range
from caresync.services.availability.directory import find_provider_by_id
from caresync.services.availability.sync_manager import build_sync_managers


def main():
    parser = argparse.ArgumentParser(description="Re-sync provider availability from the EHR")
    parser.add_argument("provider_id", help="Provider ID to sync")
    parser.add_argument("--date", type=date.fromisoformat, help="Sync a single date (YYYY-MM-DD)")
    parser.add_argument("--start", type=date.fromisoformat, help="Range start (default: provider creation date)")
    parser.add_argument("--end", type=date.fromisoformat, help="Range end (default: today)")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    managers = build_sync_managers()

    if args.date:
        db = SessionLocal()
        try:
            provider = find_provider_by_id(db, args.provider_id)
            system = provider.scheduling_system_id if provider else None
        finally:
            db.close()
        manager = managers.get(system) if system else None
        if manager is None:
            print(f"No availability sync for provider {args.provider_id} (scheduling system: {system})")
            sys.exit(1)
        synced = manager.sync_provider_availability(args.provider_id, args.date, True)
        print(f"Synced {args.provider_id} on {args.date}: {synced}")
        sys.exit(0 if synced else 1)

    result = sync_provider_availability_range(args.provider_id, args.start, args.end, managers=managers)
    print(f"Done. dates={result['dates']}, succeeded={result['succeeded']}, failed={result['failed']}")
    if result["failed"]:
        sys.exit(1)


if __name__ == "__main__":
    main()
