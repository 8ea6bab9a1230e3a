"""
CLI utility for local memory state.

Usage:
    python scripts/memkeep_admin.py --stats
    python scripts/memkeep_admin.py --summary-status project:memkeep
    python scripts/memkeep_admin.py --summarize global
    python scripts/memkeep_admin.py --sync-profile
"""

import argparse
import asyncio
import sys
from pathlib import Path

from memkeep.config.settings import load_settings, missing_config_message
from memkeep.memory.integrate import MemoryService
from memkeep.mirror.client import Mem0Mirror
from memkeep.ops.telemetry import configure_logging
from memkeep.persist.clock import to_iso
from memkeep.profile.manager import ProfileManager


def show_stats(service: MemoryService) -> int:
    """Display record counts by scope and tag."""
    stats = service.stats()
    
    print(f"📊 Memory Statistics: {service.store.db_path}\n")
    print(f"{'Scope':<30} {'Count':>10}")
    print("=" * 41)
    for scope, count in sorted(stats.by_scope.items()):
        print(f"{scope:<30} {count:>10,}")
    print("=" * 41)
    print(f"{'TOTAL':<30} {stats.total:>10,}")
    
    if stats.by_tag:
        print(f"\n{'Tag':<30} {'Count':>10}")
        print("=" * 41)
        for tag, count in sorted(stats.by_tag.items(), key=lambda kv: -kv[1]):
            print(f"{tag:<30} {count:>10,}")
    
    oldest = stats.date_range.oldest or "never"
    newest = stats.date_range.newest or "never"
    print(f"\nDate range: {oldest} to {newest}")
    return 0


def show_summary_status(service: MemoryService, scope: str) -> int:
    summaries = service.summaries
    last = summaries.get_last_summary_time(scope)
    
    print(f"🧮 Summary status for {scope}\n")
    print(f"   Activity count:    {summaries.get_activity_count(scope)} / {summaries.policy.activity_threshold}")
    print(f"   Last summary:      {to_iso(last) if last else 'never'}")
    print(f"   Summary due now:   {'yes' if summaries.should_generate_summary(scope) else 'no'}")
    return 0


async def summarize(service: MemoryService, scope: str) -> int:
    summary = await service.summaries.trigger_summary(scope)
    if summary is None:
        print(f"ℹ️  No memories in the current period for {scope}, nothing to summarize")
        return 0
    
    print(summary.content)
    if summary.remote_id:
        print(f"\n✓ Mirrored as {summary.remote_id}")
    return 0


async def sync_profile(profiles: ProfileManager) -> int:
    result = await profiles.sync_from_remote()
    print(f"✓ Profile sync: {result.action} (lastUpdated {result.profile.meta.last_updated})")
    return 0


async def run(args) -> int:
    settings = load_settings(args.config_dir)
    configure_logging(settings.log_level)
    
    mirror = None if args.local_only else Mem0Mirror.from_settings(settings)
    if mirror is None and args.sync_profile:
        print(missing_config_message(settings))
    
    service = MemoryService.from_settings(settings, mirror=mirror)
    exit_code = 0
    
    try:
        if args.stats:
            exit_code = show_stats(service)
        
        if args.summary_status:
            exit_code = show_summary_status(service, args.summary_status)
        
        if args.summarize:
            exit_code = await summarize(service, args.summarize)
        
        if args.sync_profile:
            profiles = ProfileManager.from_settings(settings, mirror=mirror)
            exit_code = await sync_profile(profiles)
    finally:
        await service.aclose()
    
    return exit_code


def main():
    """CLI entrypoint."""
    parser = argparse.ArgumentParser(
        description="Inspect and maintain local memkeep state"
    )
    parser.add_argument(
        "--stats",
        action="store_true",
        help="Show record statistics",
    )
    parser.add_argument(
        "--summary-status",
        type=str,
        metavar="SCOPE",
        help="Show activity counter and last summary time for a scope",
    )
    parser.add_argument(
        "--summarize",
        type=str,
        metavar="SCOPE",
        help="Generate a summary for a scope now",
    )
    parser.add_argument(
        "--sync-profile",
        action="store_true",
        help="Reconcile the local profile with the remote snapshot log",
    )
    parser.add_argument(
        "--local-only",
        action="store_true",
        help="Don't contact the remote mirror",
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=None,
        help="Config directory (default: $MEMKEEP_CONFIG_DIR or ~/.config/memkeep)",
    )
    
    args = parser.parse_args()
    
    # Require at least one action
    if not (args.stats or args.summary_status or args.summarize or args.sync_profile):
        parser.print_help()
        print("\n❌ Error: Must specify --stats, --summary-status, --summarize or --sync-profile")
        sys.exit(1)
    
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
