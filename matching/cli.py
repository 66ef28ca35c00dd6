"""
Command-line interface for member/alumni linkage.

Usage:
    python -m matching preview
    python -m matching preview --limit 20
    python -m matching preview --json
    python -m matching auto-link
    python -m matching stats
    python -m matching merge 41 57 --take-loser phone,email
"""

import argparse
import json
import logging
import sys

from .access import SYSTEM_CALLER
from .config import CHOICE_LOSER, MERGEABLE_FIELDS, LinkConfig
from .errors import LinkageError
from .linker import AlumniLinker
from .merge import MemberMerger, loser_still_referenced
from .preview import LinkPreviewService
from .store import PostgresSource

logger = logging.getLogger(__name__)


def get_connection():
    """Get database connection from the shared config."""
    from db_config import get_connection as _connect
    return _connect()


def _banner(title):
    print(f"\n{'='*60}")
    print(title)
    print(f"{'='*60}")


def cmd_preview(args):
    """Show proposed member -> alumni links."""
    conn = get_connection()
    try:
        config = LinkConfig.from_env()
        result = LinkPreviewService(PostgresSource(conn), config=config).preview(SYSTEM_CALLER)
    finally:
        conn.close()

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, default=str))
        return

    _banner("LINK PREVIEW")
    print(f"  Unlinked members: {result.total_unlinked:,}")
    print(f"  Certain:          {result.total_certain:,}")
    print(f"  Uncertain:        {result.total_uncertain:,}")
    print(f"  No match:         {result.total_no_match:,}")
    print()

    shown = result.candidates[:args.limit] if args.limit else result.candidates
    for c in shown:
        print(f"  [{c.confidence:<9}] {c.similarity:>3}%  "
              f"{c.member_name} (#{c.member_id}, cohort {c.member_cohort})  ->  "
              f"{c.alumni_name} (#{c.alumni_id})")
    if len(shown) < len(result.candidates):
        print(f"  ... {len(result.candidates) - len(shown):,} more")
    print()


def cmd_auto_link(args):
    """Link exact same-cohort name matches."""
    conn = get_connection()
    try:
        result = AlumniLinker(PostgresSource(conn)).auto_link_exact(SYSTEM_CALLER)
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()

    _banner("EXACT AUTO-LINK")
    print(f"  Matched:   {result.matched:,}")
    print(f"  Unmatched: {result.unmatched:,}")
    if args.verbose:
        for name in result.unmatched_names:
            print(f"    {name}")
    print()


def cmd_stats(args):
    """Alumni totals and link coverage."""
    conn = get_connection()
    try:
        stats = AlumniLinker(PostgresSource(conn)).stats(SYSTEM_CALLER)
    finally:
        conn.close()

    _banner("ALUMNI STATS")
    print(f"  Total alumni:  {stats['total_alumni']:,}")
    print(f"  Linked alumni: {stats['linked_alumni']:,}")
    print()
    print("  By cohort:")
    for cohort, count in stats["alumni_by_cohort"].items():
        print(f"    {cohort}: {count:,}")
    print()


def parse_field_choices(take_loser):
    """'phone,email' -> {'phone': 'loser', 'email': 'loser'}"""
    if not take_loser:
        return {}
    names = [n.strip() for n in take_loser.split(",") if n.strip()]
    unknown = [n for n in names if n not in MERGEABLE_FIELDS]
    if unknown:
        raise argparse.ArgumentTypeError(
            f"Unknown field(s): {', '.join(unknown)}. Mergeable: {', '.join(MERGEABLE_FIELDS)}"
        )
    return {n: CHOICE_LOSER for n in names}


def cmd_merge(args):
    """Merge LOSER into WINNER."""
    fields = parse_field_choices(args.take_loser)

    conn = get_connection()
    try:
        source = PostgresSource(conn)
        merged = MemberMerger(source).merge(SYSTEM_CALLER, args.winner, args.loser, fields)
        leftovers = loser_still_referenced(source, args.loser)
        if any(leftovers.values()):
            raise LinkageError(f"Loser {args.loser} still referenced after merge: {leftovers}")
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()

    _banner(f"MERGED {args.loser} INTO {args.winner}")
    for key in ("id", "name", "cohort", "phone", "email", "alumni_id"):
        print(f"  {key:<10} {merged.get(key)}")
    print()


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Member/alumni linkage CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m matching preview --limit 20
  python -m matching preview --json > preview.json
  python -m matching auto-link -v
  python -m matching stats
  python -m matching merge 41 57 --take-loser phone,email
        """
    )
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    preview_parser = subparsers.add_parser('preview', help='Propose member -> alumni links')
    preview_parser.add_argument('--json', action='store_true', help='Print the full result as JSON')
    preview_parser.add_argument('--limit', type=int, help='Show at most N candidates')
    preview_parser.set_defaults(func=cmd_preview)

    auto_parser = subparsers.add_parser('auto-link', help='Link exact same-cohort name matches')
    auto_parser.set_defaults(func=cmd_auto_link)

    stats_parser = subparsers.add_parser('stats', help='Alumni link coverage')
    stats_parser.set_defaults(func=cmd_stats)

    merge_parser = subparsers.add_parser('merge', help='Merge a duplicate member into another')
    merge_parser.add_argument('winner', help='Member id that survives')
    merge_parser.add_argument('loser', help='Member id that is deleted')
    merge_parser.add_argument('--take-loser', '-t',
                              help='Comma-separated fields to copy from the loser')
    merge_parser.set_defaults(func=cmd_merge)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))
    except LinkageError as e:
        logger.error(e.message)
        sys.exit(1)


if __name__ == '__main__':
    main()
