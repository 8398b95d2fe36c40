"""
Snack Rating Pipeline - Command Line Entry Point
================================================

Two jobs:
1. rate        Reconcile, extract fruit/vegetable content and rate every product
2. mine-terms  Rank the words found in front of percentages (input for the
               hand-annotated category lookup)

Usage:
    python -m snackrating.run_pipeline rate [--records PATH] [--lookup PATH] [--output-dir DIR]
                                            [--skip-reconcile] [--skip-fv]
    python -m snackrating.run_pipeline mine-terms [--records PATH] [--top N] [--output PATH]
"""

import os
import sys
import logging
import argparse

import pandas as pd

from .config import (
    CATEGORY_LOOKUP_PATH,
    FREQUENCY_TABLE_FILENAME,
    INGREDIENTS_COLUMN,
    INGREDIENTS_VIEWMORE_COLUMN,
    OUTPUT_DIR,
    QUALIFYING_RATING,
    RECORDS_PATH,
    TOP_RATED_FILENAME,
)
from .data_loader import load_category_lookup, load_records
from .percentage_context import mine_context_terms
from .rating_pipeline import run_rating_pipeline

logger = logging.getLogger(__name__)


def run_rate(args: argparse.Namespace) -> int:
    records_df = load_records(args.records)
    lookup = load_category_lookup(args.lookup)

    step_overrides = {}
    if args.skip_reconcile:
        step_overrides['reconcile_nutrients'] = False
    if args.skip_fv:
        step_overrides['fv_percentages'] = False

    result = run_rating_pipeline(
        records_df,
        lookup,
        step_overrides=step_overrides,
        threshold=args.threshold,
    )

    os.makedirs(args.output_dir, exist_ok=True)
    frequency_path = os.path.join(args.output_dir, FREQUENCY_TABLE_FILENAME)
    top_rated_path = os.path.join(args.output_dir, TOP_RATED_FILENAME)
    result.frequency_table.to_csv(frequency_path, index=False)
    result.top_rated.to_csv(top_rated_path, index=False)

    logger.info(f"Rated {len(result.rated)} of {result.n_input} records ({result.n_excluded} excluded)")
    logger.info(f"Saved rating frequency table to {frequency_path}")
    logger.info(f"Saved {len(result.top_rated)} top-rated records to {top_rated_path}")
    return 0


def run_mine_terms(args: argparse.Namespace) -> int:
    records_df = load_records(args.records)
    texts = pd.concat(
        [records_df[INGREDIENTS_COLUMN], records_df[INGREDIENTS_VIEWMORE_COLUMN]],
        ignore_index=True,
    )
    terms_df = mine_context_terms(texts, top_n=args.top)

    output_dir = os.path.dirname(args.output)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    terms_df.to_csv(args.output, index=False)
    logger.info(f"Saved {len(terms_df)} context terms to {args.output}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Rate scraped snack products with the Health Star Rating",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m snackrating.run_pipeline rate
  python -m snackrating.run_pipeline rate --records data/raw/snacks.csv --output-dir out/
  python -m snackrating.run_pipeline rate --skip-reconcile --skip-fv
  python -m snackrating.run_pipeline mine-terms --top 200 --output terms.csv
        """
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    rate = subparsers.add_parser('rate', help='Rate all complete records')
    rate.add_argument('--records', default=RECORDS_PATH, help='Scraped records CSV')
    rate.add_argument('--lookup', default=CATEGORY_LOOKUP_PATH, help='Annotated category lookup CSV')
    rate.add_argument('--output-dir', default=OUTPUT_DIR, help='Directory for the output tables')
    rate.add_argument(
        '--threshold',
        type=float,
        default=QUALIFYING_RATING,
        help='Minimum rating for the top-rated list'
    )
    rate.add_argument(
        '--skip-reconcile',
        action='store_true',
        help='Use the structured nutrient columns without checking them against the nutrition table'
    )
    rate.add_argument(
        '--skip-fv',
        action='store_true',
        help='Rate without fruit/vegetable content from the ingredient lists (both percentages set to 0)'
    )
    rate.set_defaults(func=run_rate)

    mine = subparsers.add_parser('mine-terms', help='Rank context terms in front of percentages')
    mine.add_argument('--records', default=RECORDS_PATH, help='Scraped records CSV')
    mine.add_argument('--top', type=int, default=None, help='Keep only the N most frequent terms')
    mine.add_argument(
        '--output',
        default=os.path.join(OUTPUT_DIR, 'context_terms.csv'),
        help='Output CSV for the ranked terms'
    )
    mine.set_defaults(func=run_mine_terms)

    return parser


def main(argv=None) -> int:
    logging.basicConfig(level=logging.INFO)
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Pipeline failed: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
