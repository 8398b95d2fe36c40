"""
Nutrient Reconciliation Module

The scraper captures each nutrient twice: once in a structured column and once
inside the free-text nutrition table. Structured columns are frequently shifted
or blank, so every record's five nutrients are re-read from the table and the
two sources are compared.

If the two sources disagree about which nutrients are present, the whole row of
structured values is considered unreliable and replaced by the table values in
one go.
"""

import re
import logging
from enum import Enum
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd

from .config import (
    BLOB_SUFFIX,
    NOISE_SUBSTRINGS,
    NUTRIENT_COLUMNS,
    NUTRIENT_KEYWORDS,
    NUTRITION_BLOB_COLUMN,
    SOURCE_DECISION_COLUMN,
)
from .text_extraction import extract_after_keyword, tokenize

logger = logging.getLogger(__name__)

NUMBER_PATTERN = re.compile(r'\d[\d,]*(?:\.\d+)?|\.\d+')


class SourceDecision(str, Enum):
    PRIMARY = "primary"
    BLOB = "blob"


def parse_nutrient_value(value: Any) -> Optional[float]:
    """
    Parse a scraped nutrient quantity such as '450mg', '1,850kj' or 'approx. 3.2g'.

    Commas are thousands separators, so a decimal comma is not supported:
    '3,2g' parses as 32.

    Returns:
        float or None: First numeric literal in the text, or None when there is none
    """
    if value is None:
        return None
    if isinstance(value, (int, float, np.integer, np.floating)) and not isinstance(value, bool):
        if pd.isna(value):
            return None
        return float(value)
    if not isinstance(value, str):
        return None

    text = value
    for noise in NOISE_SUBSTRINGS:
        text = text.replace(noise, '')

    match = NUMBER_PATTERN.search(text)
    if match is None:
        return None
    try:
        return float(match.group(0).replace(',', ''))
    except ValueError:
        return None


def blob_column(nutrient: str) -> str:
    return f"{nutrient}{BLOB_SUFFIX}"


def extract_blob_nutrients(nutrition_text: Optional[str]) -> Dict[str, Optional[float]]:
    """Read every tracked nutrient out of the full nutrition table text."""
    tokens = tokenize(nutrition_text)
    return {
        nutrient: parse_nutrient_value(extract_after_keyword(tokens, keyword))
        for nutrient, keyword in NUTRIENT_KEYWORDS.items()
    }


def _present(value: Any) -> bool:
    return value is not None and not pd.isna(value)


def decide_source(primary: Dict[str, Any], secondary: Dict[str, Any]) -> SourceDecision:
    """
    Decide which source a record's nutrients come from.

    The blob wins as soon as one nutrient is present in one source but not in
    the other (missing from the structured column, or added there without
    support from the table).
    """
    for nutrient in NUTRIENT_COLUMNS:
        if _present(primary.get(nutrient)) != _present(secondary.get(nutrient)):
            return SourceDecision.BLOB
    return SourceDecision.PRIMARY


def reconcile_nutrients(records_df: pd.DataFrame) -> pd.DataFrame:
    """
    Reconcile structured nutrient columns against the nutrition table text.

    Args:
        records_df: DataFrame with 'nutrition' and the five nutrient columns
                    (energy, saturated, sugar, sodium, protein) as raw text

    Returns:
        DataFrame: Copy of the input with numeric nutrient columns holding the
                   surviving values and a 'source_decision' column
    """
    required = [NUTRITION_BLOB_COLUMN] + NUTRIENT_COLUMNS
    missing = [c for c in required if c not in records_df.columns]
    if missing:
        raise ValueError(f"Input DataFrame must contain columns: {', '.join(missing)}")

    records_df = records_df.copy()

    for nutrient in NUTRIENT_COLUMNS:
        records_df[nutrient] = pd.to_numeric(
            records_df[nutrient].apply(parse_nutrient_value),
            errors='coerce',
        )

    blob_values = records_df[NUTRITION_BLOB_COLUMN].apply(extract_blob_nutrients)
    blob_columns = [blob_column(n) for n in NUTRIENT_COLUMNS]
    for nutrient in NUTRIENT_COLUMNS:
        records_df[blob_column(nutrient)] = pd.to_numeric(
            blob_values.apply(lambda values: values.get(nutrient)),
            errors='coerce',
        )

    decisions = pd.Series(
        [
            decide_source(
                {n: row[n] for n in NUTRIENT_COLUMNS},
                {n: row[blob_column(n)] for n in NUTRIENT_COLUMNS},
            )
            for _, row in records_df.iterrows()
        ],
        index=records_df.index,
        dtype=object,
    )
    use_blob = decisions == SourceDecision.BLOB

    # Row-level overwrite: all five nutrients together, never a single column
    if use_blob.any():
        records_df.loc[use_blob, NUTRIENT_COLUMNS] = records_df.loc[use_blob, blob_columns].to_numpy()

    records_df[SOURCE_DECISION_COLUMN] = decisions.apply(lambda d: d.value)
    records_df = records_df.drop(columns=blob_columns)

    logger.info(
        f"Reconciled nutrients for {len(records_df)} records: "
        f"{int(use_blob.sum())} rows replaced from the nutrition table"
    )
    return records_df
