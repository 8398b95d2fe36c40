import os
import logging
from typing import Optional

import pandas as pd

from .config import (
    CATEGORY_LOOKUP_PATH,
    ID_COLUMN,
    NULL_SENTINEL,
    NUTRIENT_COLUMNS,
    RECORDS_PATH,
    TEXT_COLUMNS,
)
from .fv_aggregation import CategoryLookup

logger = logging.getLogger(__name__)

NULL_SENTINEL_CF = NULL_SENTINEL.casefold()

RECORD_COLUMNS = [ID_COLUMN] + TEXT_COLUMNS + NUTRIENT_COLUMNS


def _normalize_cell(value):
    if isinstance(value, str):
        normalized = value.strip()
        if normalized and normalized.casefold() != NULL_SENTINEL_CF:
            return normalized.casefold()
    return None


def _log_cleaning_stats(label: str, before: int, after: int):
    removed = before - after
    pct = (removed / before * 100) if before else 0
    logger.info(f"{label}: {before} -> {after} rows (removed {removed}, {pct:.2f}%)")


def normalize_records(records_df: pd.DataFrame) -> pd.DataFrame:
    """
    Case-fold every text cell and turn the scraper's null marker into a missing value.

    Columns from the record layout that the file lacks are added as all-missing,
    so rows with absent text fields flow through the pipeline as missing values.
    """
    records_df = records_df.copy()

    for col in RECORD_COLUMNS:
        if col not in records_df.columns:
            logger.warning(f"Column '{col}' not found in records; filling with missing values")
            records_df[col] = None

    # Built as an object column so missing stays None whatever the source dtype
    for col in TEXT_COLUMNS + NUTRIENT_COLUMNS:
        records_df[col] = pd.Series(
            [_normalize_cell(v) for v in records_df[col]],
            index=records_df.index,
            dtype=object,
        )

    records_df[ID_COLUMN] = records_df[ID_COLUMN].apply(
        lambda v: v.strip() if isinstance(v, str) else v
    )

    return records_df


def load_records(path: Optional[str] = None) -> pd.DataFrame:
    """
    Load the scraped product records.

    Args:
        path: CSV file with id, name, ingredients, ingredients_viewmore, nutrition,
              energy, saturated, sugar, sodium and protein columns (defaults to
              config.RECORDS_PATH)

    Returns:
        DataFrame: Normalised records, one row per product
    """
    path = path or RECORDS_PATH
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Records file not found: {path}")

    raw_df = pd.read_csv(path, dtype=str, keep_default_na=False)
    raw_count = len(raw_df)

    records_df = normalize_records(raw_df)
    all_empty = records_df[TEXT_COLUMNS + NUTRIENT_COLUMNS].isna().all(axis=1)
    records_df = records_df.loc[~all_empty].reset_index(drop=True)
    _log_cleaning_stats(f"{os.path.basename(path)} (dropped empty rows)", raw_count, len(records_df))

    return records_df


def load_category_lookup(path: Optional[str] = None) -> CategoryLookup:
    """Load the annotated context-term table (term, non_concentrated, concentrated)."""
    path = path or CATEGORY_LOOKUP_PATH
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Category lookup file not found: {path}")

    lookup_df = pd.read_csv(path, dtype=str, keep_default_na=False)
    lookup_df.columns = [c.strip().lower() for c in lookup_df.columns]
    return CategoryLookup.from_frame(lookup_df)
