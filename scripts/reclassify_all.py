"""
Reclassify All Permits Script

Re-derives scope tags, trade matches, lead scores and product matches for
every permit in the database (or a filtered subset).

Usage:
    python scripts/reclassify_all.py [--batch-size 500] [--permit-type "Plumbing(PS)"]
                                     [--issued-after 2024-01-01] [--prefix "24 "]
                                     [--unclassified-only] [--default-rules]
                                     [--log-level DEBUG]
"""
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import argparse
from datetime import date
from typing import Optional

from config.settings import settings
from src.tradeleads.models.permit import PermitFilter
from src.tradeleads.pipelines.reclassification import ReclassificationPipeline, evaluate_run_health
from src.tradeleads.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def build_permit_filter(args) -> Optional[PermitFilter]:
    """Translate CLI options into a permit filter (None when unrestricted)."""
    permit_filter = PermitFilter(
        permit_types=args.permit_type or None,
        issued_after=date.fromisoformat(args.issued_after) if args.issued_after else None,
        permit_num_prefix=args.prefix,
        unclassified_only=args.unclassified_only,
    )
    if permit_filter == PermitFilter():
        return None
    return permit_filter


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Reclassify building permits into trade leads"
    )
    parser.add_argument(
        '--batch-size',
        type=int,
        default=settings.reclassify_batch_size,
        help=f'Permits fetched per page (default: {settings.reclassify_batch_size})'
    )
    parser.add_argument(
        '--permit-type',
        action='append',
        help='Only reclassify this permit type (repeatable)'
    )
    parser.add_argument(
        '--issued-after',
        help='Only reclassify permits issued on or after this date (YYYY-MM-DD)'
    )
    parser.add_argument(
        '--prefix',
        help='Only reclassify permit numbers starting with this prefix'
    )
    parser.add_argument(
        '--unclassified-only',
        action='store_true',
        help='Skip permits whose scope has already been derived'
    )
    parser.add_argument(
        '--default-rules',
        action='store_true',
        help='Ignore the trade_mapping_rules table and use the built-in rules'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help=f'Override LOG_LEVEL (default: {settings.log_level})'
    )
    return parser


def main(argv=None) -> int:
    """Main entry point for reclassification script."""
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level)

    print("\n" + "="*60)
    print("PERMIT RECLASSIFICATION")
    print("="*60)
    print(f"Batch Size: {args.batch_size}")
    print(f"Rules:      {'built-in' if args.default_rules else 'rule store (built-in fallback)'}")
    print("="*60 + "\n")

    pipeline = ReclassificationPipeline(use_rule_store=not args.default_rules)

    try:
        stats = pipeline.reclassify_all(
            batch_size=args.batch_size,
            permit_filter=build_permit_filter(args),
        )
    except KeyboardInterrupt:
        print("\n\n! Reclassification interrupted by user\n")
        logger.warning("reclassification_interrupted_by_user")
        return 130
    except Exception as e:
        print(f"\n\n✗ Reclassification failed: {e}\n")
        logger.error("reclassification_failed", error=str(e))
        raise

    health = evaluate_run_health(stats)

    print("\n" + "="*60)
    print("RECLASSIFICATION SUMMARY")
    print("="*60)
    print(f"Processed:     {stats.processed}")
    print(f"Classified:    {stats.classified}")
    print(f"Errors:        {stats.errors}")
    print(f"Trade Matches: {stats.trade_matches_total}")
    print(f"Products:      {stats.products_total}")
    print(f"Status:        {health['status']}")
    print("="*60 + "\n")

    return 0 if health['healthy'] else 1


if __name__ == "__main__":
    sys.exit(main())
