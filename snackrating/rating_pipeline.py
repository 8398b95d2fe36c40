"""
Rating Pipeline

Runs the full batch: nutrient reconciliation, fruit/vegetable extraction,
filtering of incomplete records and rating. The rating function is injected so
the pipeline can be run against any scorer with the HSR call signature.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import pandas as pd

from .config import (
    DEFAULT_FIBRE,
    FV_CONCENTRATED_COLUMN,
    FV_NON_CONCENTRATED_COLUMN,
    MANDATORY_NUTRIENTS,
    PIPELINE_STEPS,
    QUALIFYING_RATING,
    RATING_COLUMN,
    TOP_RATED_COLUMNS,
)
from .fv_aggregation import CategoryLookup, add_fv_columns
from .hsr_scoring import health_star_rating
from .reconciliation import parse_nutrient_value, reconcile_nutrients

logger = logging.getLogger(__name__)

RatingFunction = Callable[..., Optional[float]]


@dataclass
class RatingResult:
    rated: pd.DataFrame
    frequency_table: pd.DataFrame
    top_rated: pd.DataFrame
    n_input: int
    n_excluded: int


def filter_complete_records(records_df: pd.DataFrame) -> pd.DataFrame:
    """
    Keep only records that can be rated.

    Energy, saturated fat, sugar and sodium must all be present. Missing protein
    is set to zero and never excludes a record.
    """
    missing = [c for c in MANDATORY_NUTRIENTS + ['protein'] if c not in records_df.columns]
    if missing:
        raise ValueError(f"Input DataFrame must contain columns: {', '.join(missing)}")

    before = len(records_df)
    complete = records_df.dropna(subset=MANDATORY_NUTRIENTS).copy()
    complete['protein'] = complete['protein'].fillna(0)

    excluded = before - len(complete)
    if excluded:
        logger.warning(f"Excluded {excluded} of {before} records with missing energy, saturated fat, sugar or sodium")
    return complete


def rate_records(records_df: pd.DataFrame, rate_fn: RatingFunction = health_star_rating) -> pd.DataFrame:
    """Call the rating function for every record and store the result in 'hsr'."""
    missing = [c for c in (FV_CONCENTRATED_COLUMN, FV_NON_CONCENTRATED_COLUMN) if c not in records_df.columns]
    if missing:
        raise ValueError(f"Input DataFrame must contain columns: {', '.join(missing)}")

    records_df = records_df.copy()
    if records_df.empty:
        records_df[RATING_COLUMN] = pd.Series(dtype=float)
        return records_df

    records_df[RATING_COLUMN] = pd.to_numeric(
        records_df.apply(
            lambda row: rate_fn(
                row['energy'],
                row['saturated'],
                row['sugar'],
                row['sodium'],
                row[FV_CONCENTRATED_COLUMN],
                row[FV_NON_CONCENTRATED_COLUMN],
                row['protein'],
                DEFAULT_FIBRE,
            ),
            axis=1,
        ),
        errors='coerce',
    )

    unrated = records_df[RATING_COLUMN].isna().sum()
    if unrated:
        logger.warning(f"Rating function returned no value for {unrated} records")
    return records_df


def rating_frequency_table(rated_df: pd.DataFrame) -> pd.DataFrame:
    """Count how many records received each rating, lowest rating first."""
    counts = rated_df[RATING_COLUMN].dropna().value_counts().sort_index()
    return pd.DataFrame({RATING_COLUMN: counts.index.astype(float), 'count': counts.to_numpy()})


def top_rated_records(rated_df: pd.DataFrame, threshold: float = QUALIFYING_RATING) -> pd.DataFrame:
    """Records rated at or above `threshold`, best first."""
    columns = [c for c in TOP_RATED_COLUMNS if c in rated_df.columns]
    qualifying = rated_df.loc[rated_df[RATING_COLUMN] >= threshold, columns]
    return qualifying.sort_values(RATING_COLUMN, ascending=False, kind='mergesort').reset_index(drop=True)


def run_rating_pipeline(
    records_df: pd.DataFrame,
    lookup: CategoryLookup,
    rate_fn: RatingFunction = health_star_rating,
    step_overrides: Optional[Dict[str, bool]] = None,
    threshold: float = QUALIFYING_RATING,
) -> RatingResult:
    """
    Rate every complete record of a scraped product table.

    Steps can be toggled via `snackrating.config.PIPELINE_STEPS` or by passing
    `step_overrides` (overrides take precedence).

    Args:
        records_df: Normalised records (see data_loader.load_records)
        lookup: Category lookup for the fruit/vegetable extraction
        rate_fn: Rating function with the HSR signature
        step_overrides: Optional per-step on/off flags
        threshold: Minimum rating for the top-rated view

    Returns:
        RatingResult with the rated records, the rating frequency table and the
        top-rated view
    """
    step_plan = {**PIPELINE_STEPS}
    if step_overrides:
        step_plan.update(step_overrides)

    n_input = len(records_df)
    logger.info(f"Starting rating pipeline with {n_input} records")

    df = records_df.copy()

    if step_plan.get('reconcile_nutrients'):
        df = reconcile_nutrients(df)
    else:
        logger.warning("Skipping reconcile_nutrients: structured nutrient columns used as-is")
        for nutrient in MANDATORY_NUTRIENTS + ['protein']:
            if nutrient in df.columns:
                df[nutrient] = pd.to_numeric(df[nutrient].apply(parse_nutrient_value), errors='coerce')

    if step_plan.get('fv_percentages'):
        df = add_fv_columns(df, lookup)
    else:
        logger.warning("Skipping fv_percentages: fruit/vegetable content set to 0")
        df[FV_CONCENTRATED_COLUMN] = 0.0
        df[FV_NON_CONCENTRATED_COLUMN] = 0.0

    complete_df = filter_complete_records(df)
    rated_df = rate_records(complete_df, rate_fn=rate_fn)

    frequency_table = rating_frequency_table(rated_df)
    top_rated = top_rated_records(rated_df, threshold=threshold)

    logger.info(
        f"Rated {rated_df[RATING_COLUMN].notna().sum()} records; "
        f"{len(top_rated)} at or above {threshold} stars"
    )

    return RatingResult(
        rated=rated_df,
        frequency_table=frequency_table,
        top_rated=top_rated,
        n_input=n_input,
        n_excluded=n_input - len(complete_df),
    )
