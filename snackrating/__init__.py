"""Snack rating package.

Reconciles scraped nutrition records, extracts fruit/vegetable content from
ingredient text and rates each product with the Health Star Rating.
"""

from .fv_aggregation import (
    CategoryLookup,
    FvPercentages,
    aggregate_fv_percentages,
    correct_double_count,
    record_fv_percentages,
)
from .hsr_scoring import health_star_rating
from .rating_pipeline import RatingResult, run_rating_pipeline

__all__ = [
    'CategoryLookup',
    'FvPercentages',
    'aggregate_fv_percentages',
    'correct_double_count',
    'record_fv_percentages',
    'health_star_rating',
    'RatingResult',
    'run_rating_pipeline',
]
