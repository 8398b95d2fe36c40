"""
Fruit/Vegetable Percentage Module

Turns ingredient prose into the two fruit/vegetable percentages the rating
needs: concentrated (pastes, powders, dried produce) and non-concentrated
(whole, pureed or juiced produce).

Each percentage literal is classified by the terms in front of it using a
human-curated category lookup, matching percentages are summed per category,
and records whose totals overshoot 100% (nested sub-percentages counted next
to their parent) are halved back into range.
"""

import logging
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional, Tuple

import pandas as pd

from .config import (
    DOUBLE_COUNT_THRESHOLD,
    EXCLUDED_CONTEXT_TERMS,
    FV_CONCENTRATED_COLUMN,
    FV_NON_CONCENTRATED_COLUMN,
    INGREDIENTS_COLUMN,
    INGREDIENTS_VIEWMORE_COLUMN,
    LOOKUP_CONCENTRATED_COLUMN,
    LOOKUP_NON_CONCENTRATED_COLUMN,
    LOOKUP_TERM_COLUMN,
)
from .percentage_context import context_term, percentage_contexts, percentage_value
from .text_extraction import tokenize

logger = logging.getLogger(__name__)

# ============================================================================
# Categories
# ============================================================================

CATEGORY_CONCENTRATED = "concentrated"
CATEGORY_NON_CONCENTRATED = "non_concentrated"
CATEGORY_NEITHER = "neither"

_TRUE_FLAGS = {'1', '1.0', 'true', 't', 'yes', 'y', 'x'}


def _is_flagged(value) -> bool:
    """Interpret a lookup flag cell; blanks and anything unrecognised mean 'not flagged'."""
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return False
    if isinstance(value, (bool, int, float)):
        return bool(value)
    return str(value).strip().lower() in _TRUE_FLAGS


@dataclass(frozen=True)
class CategoryLookup:
    """Immutable context term -> fruit/vegetable category mapping."""
    concentrated_terms: FrozenSet[str] = frozenset()
    non_concentrated_terms: FrozenSet[str] = frozenset()

    @classmethod
    def from_terms(
        cls,
        concentrated: Iterable[str] = (),
        non_concentrated: Iterable[str] = (),
    ) -> "CategoryLookup":
        return cls(
            concentrated_terms=frozenset(t.strip().lower() for t in concentrated),
            non_concentrated_terms=frozenset(t.strip().lower() for t in non_concentrated),
        )

    @classmethod
    def from_frame(cls, lookup_df: pd.DataFrame) -> "CategoryLookup":
        """
        Build the lookup from the annotated term table.

        Args:
            lookup_df: DataFrame with 'term', 'non_concentrated' and 'concentrated'
                       columns. A missing flag means the term is in neither set.

        Returns:
            CategoryLookup
        """
        if LOOKUP_TERM_COLUMN not in lookup_df.columns:
            raise ValueError(f"Input DataFrame must contain '{LOOKUP_TERM_COLUMN}' column")

        concentrated = set()
        non_concentrated = set()
        for _, row in lookup_df.iterrows():
            term = row.get(LOOKUP_TERM_COLUMN)
            if not isinstance(term, str) or not term.strip():
                continue
            term = term.strip().lower()
            if _is_flagged(row.get(LOOKUP_CONCENTRATED_COLUMN)):
                concentrated.add(term)
            if _is_flagged(row.get(LOOKUP_NON_CONCENTRATED_COLUMN)):
                non_concentrated.add(term)

        logger.info(
            f"Category lookup: {len(concentrated)} concentrated terms, "
            f"{len(non_concentrated)} non-concentrated terms"
        )
        return cls(frozenset(concentrated), frozenset(non_concentrated))

    def category_of(self, term: str) -> str:
        if term in self.concentrated_terms:
            return CATEGORY_CONCENTRATED
        if term in self.non_concentrated_terms:
            return CATEGORY_NON_CONCENTRATED
        return CATEGORY_NEITHER


@dataclass(frozen=True)
class FvPercentages:
    concentrated: float = 0.0
    non_concentrated: float = 0.0


# ============================================================================
# Aggregation
# ============================================================================

def classify_window(window: Iterable[str], lookup: CategoryLookup) -> str:
    """
    Classify a context window.

    Concentrated wins whenever any term is concentrated. Non-concentrated needs
    a non-concentrated term and no 'oil' in the window, since 'vegetable oil'
    would otherwise count as vegetable content.
    """
    terms = {context_term(token) for token in window}
    if terms & lookup.concentrated_terms:
        return CATEGORY_CONCENTRATED
    if terms & lookup.non_concentrated_terms and not terms & EXCLUDED_CONTEXT_TERMS:
        return CATEGORY_NON_CONCENTRATED
    return CATEGORY_NEITHER


def aggregate_fv_percentages(text: Optional[str], lookup: CategoryLookup) -> FvPercentages:
    """Sum the concentrated and non-concentrated percentages mentioned in one ingredient text."""
    tokens = tokenize(text)
    concentrated = 0.0
    non_concentrated = 0.0

    for idx, window in percentage_contexts(tokens):
        category = classify_window(window, lookup)
        if category == CATEGORY_NEITHER:
            continue
        value = percentage_value(tokens[idx])
        if value is None:
            continue
        if category == CATEGORY_CONCENTRATED:
            concentrated += value
        else:
            non_concentrated += value

    return FvPercentages(concentrated=concentrated, non_concentrated=non_concentrated)


def record_fv_percentages(
    short_text: Optional[str],
    expanded_text: Optional[str],
    lookup: CategoryLookup,
) -> FvPercentages:
    """
    Combine the short and the expanded ingredient lists of one record.

    Both lists describe the same product, so the larger value per category is
    kept instead of adding them up.
    """
    short = aggregate_fv_percentages(short_text, lookup)
    expanded = aggregate_fv_percentages(expanded_text, lookup)
    return FvPercentages(
        concentrated=max(short.concentrated, expanded.concentrated),
        non_concentrated=max(short.non_concentrated, expanded.non_concentrated),
    )


# ============================================================================
# Double-count correction
# ============================================================================

def correct_double_count(concentrated: float, non_concentrated: float) -> Tuple[float, float]:
    """
    Halve percentages that were summed twice.

    Both tests look at the values as they came in. The concentrated share is
    halved when the combined total is over 100; the non-concentrated share is
    only halved when the concentrated share on its own is over 100.

    Returns:
        (concentrated, non_concentrated) after correction
    """
    corrected_concentrated = concentrated
    corrected_non_concentrated = non_concentrated

    if concentrated + non_concentrated > DOUBLE_COUNT_THRESHOLD:
        corrected_concentrated = concentrated / 2
    # TODO: confirm whether this should test the combined total like the line above
    if concentrated > DOUBLE_COUNT_THRESHOLD:
        corrected_non_concentrated = non_concentrated / 2

    return corrected_concentrated, corrected_non_concentrated


def add_fv_columns(records_df: pd.DataFrame, lookup: CategoryLookup) -> pd.DataFrame:
    """
    Add corrected fruit/vegetable percentage columns to the records.

    Args:
        records_df: DataFrame with 'ingredients' and 'ingredients_viewmore' columns
        lookup: Category lookup used to classify percentage contexts

    Returns:
        DataFrame: Copy of the input with 'fv_concentrated' and 'fv_non_concentrated'
    """
    missing = [c for c in (INGREDIENTS_COLUMN, INGREDIENTS_VIEWMORE_COLUMN) if c not in records_df.columns]
    if missing:
        raise ValueError(f"Input DataFrame must contain columns: {', '.join(missing)}")

    records_df = records_df.copy()
    if records_df.empty:
        records_df[FV_CONCENTRATED_COLUMN] = pd.Series(dtype=float)
        records_df[FV_NON_CONCENTRATED_COLUMN] = pd.Series(dtype=float)
        return records_df

    raw = records_df.apply(
        lambda row: record_fv_percentages(
            row.get(INGREDIENTS_COLUMN),
            row.get(INGREDIENTS_VIEWMORE_COLUMN),
            lookup,
        ),
        axis=1,
    )
    corrected = raw.apply(lambda fv: correct_double_count(fv.concentrated, fv.non_concentrated))

    overshoot = raw.apply(lambda fv: fv.concentrated + fv.non_concentrated > DOUBLE_COUNT_THRESHOLD)
    if overshoot.any():
        logger.warning(f"Halved double-counted fruit/vegetable percentages for {int(overshoot.sum())} records")

    records_df[FV_CONCENTRATED_COLUMN] = corrected.apply(lambda x: x[0]).astype(float)
    records_df[FV_NON_CONCENTRATED_COLUMN] = corrected.apply(lambda x: x[1]).astype(float)

    with_fv = (records_df[FV_CONCENTRATED_COLUMN] > 0) | (records_df[FV_NON_CONCENTRATED_COLUMN] > 0)
    logger.info(f"Extracted fruit/vegetable content for {int(with_fv.sum())} of {len(records_df)} records")

    return records_df
