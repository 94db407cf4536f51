#!/usr/bin/env python3
"""
Ride Tracker command line interface.

Runs goal maintenance against the CSV stores in a data directory:
recalculate progress, list goals, renew expired goals and show storage stats.
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from .errors import RideTrackerError, Unauthenticated
from .goals.engine import GoalRecalculationEngine
from .storage.csv_manager import open_csv_stores
from .utils.clock import SystemClock


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ride-tracker",
        description="Goal progress maintenance for recorded rides",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Example usage:
  ride-tracker --data-dir ride_data recalculate --user alice
  ride-tracker goals --user alice --active
  ride-tracker renew --user alice
        """,
    )
    parser.add_argument('--data-dir', default=None,
                        help='Directory holding rides.csv and goals.csv (default: from config)')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable debug logging')

    sub = parser.add_subparsers(dest='command', required=True)

    p_recalc = sub.add_parser('recalculate', help='Recalculate progress of active goals')
    p_recalc.add_argument('--user', required=True, help='User ID')

    p_goals = sub.add_parser('goals', help='List goals')
    p_goals.add_argument('--user', required=True, help='User ID')
    p_goals.add_argument('--active', action='store_true', help='Only active goals')

    p_renew = sub.add_parser('renew', help='Renew expired goals for the next period')
    p_renew.add_argument('--user', required=True, help='User ID')

    sub.add_parser('stats', help='Show storage statistics')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    ride_store, goal_store = open_csv_stores(args.data_dir)
    engine = GoalRecalculationEngine(ride_store, goal_store, SystemClock())

    try:
        if args.command == 'recalculate':
            result = engine.recalculate(args.user)
            print(f"🔄 Recalculated goals for {args.user}")
            print(f"   ✅ Updated: {result.updated_count}")
            print(f"   🏁 Completed: {len(result.completed)}")
            print(f"   ⌛ Expired: {len(result.expired)}")
            if result.failed:
                print(f"   ❌ Failed: {len(result.failed)}")
                for goal_id in result.failed:
                    print(f"      • {goal_id}: {result.errors.get(goal_id, '')}")
                return 1
            return 0

        if args.command == 'goals':
            goals = goal_store.list(args.user, active_only=True if args.active else None)
            if not goals:
                print("📄 No goals found")
            for g in goals:
                status = 'active' if g.is_active else ('completed' if g.completed_at else 'inactive')
                print(f"{g.goal_id}  {g.name:<20} {g.description:<22} "
                      f"{g.current_value:>8.1f} / {g.target_value:<8.1f} "
                      f"{g.progress_percentage:5.1f}%  {status}")
            return 0

        if args.command == 'renew':
            renewed = engine.renew_expired(args.user)
            print(f"♻️ Renewed {len(renewed)} goals")
            for g in renewed:
                print(f"   • {g.name}: {g.period_start:%Y-%m-%d} → {g.period_end:%Y-%m-%d}")
            return 0

        stats = ride_store.manager.get_storage_stats()
        print(f"📁 Stored rides: {stats['rides_count']}")
        print(f"🎯 Stored goals: {stats['goals_count']} ({stats['active_goals_count']} active)")
        print(f"💾 Storage size: {stats['storage_size_mb']:.2f} MB")
        print(f"🔄 Backups: {stats['backup_count']}")
        return 0

    except Unauthenticated as e:
        print(f"❌ Not authenticated: {e}", file=sys.stderr)
        return 2
    except RideTrackerError as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
