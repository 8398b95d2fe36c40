"""
Health Star Rating Module

Default rating function for the pipeline: the Health Star Rating (HSR) for
category 2 foods (packaged foods that are not dairy, oils or beverages), which
covers the snack range this package is built for.

The pipeline only relies on the call signature, so any function with the same
arguments can be passed to `run_rating_pipeline` instead.
"""

import logging
from typing import Any, List, Optional

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

# ============================================================================
# HSR Thresholds Configuration (category 2, per 100g)
# ============================================================================

HSR_THRESHOLDS = {
    "baseline": {
        "energy_kj": {
            "pairs": [(335, 0), (670, 1), (1005, 2), (1340, 3), (1675, 4), (2010, 5), (2345, 6), (2680, 7), (3015, 8), (3350, 9)],
            "cap": 10,
        },
        "saturated_fat_g": {
            "pairs": [(1.0, 0), (2.0, 1), (3.0, 2), (4.0, 3), (5.0, 4), (6.0, 5), (7.0, 6), (8.0, 7), (9.0, 8), (10.0, 9),
                      (11.2, 10), (12.5, 11), (13.9, 12), (15.5, 13), (17.3, 14), (19.3, 15), (21.6, 16), (24.1, 17), (26.9, 18), (30.0, 19)],
            "cap": 20,
        },
        "total_sugars_g": {
            "pairs": [(5.0, 0), (8.9, 1), (12.8, 2), (16.8, 3), (20.7, 4), (24.6, 5), (28.5, 6), (32.4, 7), (36.3, 8), (40.3, 9),
                      (44.2, 10), (48.1, 11), (52.0, 12), (55.9, 13), (59.8, 14), (63.8, 15), (67.7, 16), (71.6, 17), (75.5, 18), (79.4, 19),
                      (83.3, 20), (87.2, 21), (91.2, 22), (95.1, 23), (99.0, 24)],
            "cap": 25,
        },
        "sodium_mg": {
            "pairs": [(90, 0), (180, 1), (270, 2), (360, 3), (450, 4), (540, 5), (630, 6), (720, 7), (810, 8), (900, 9),
                      (990, 10), (1080, 11), (1170, 12), (1260, 13), (1350, 14), (1440, 15), (1530, 16), (1620, 17), (1710, 18), (1800, 19),
                      (1890, 20), (1980, 21), (2070, 22), (2160, 23), (2250, 24), (2340, 25), (2430, 26), (2520, 27), (2610, 28), (2700, 29)],
            "cap": 30,
        },
    },
    "modifying": {
        "fvnl_pct": {
            "pairs": [(40.0, 0), (60.0, 1), (80.0, 2), (99.99, 5)],
            "cap": 8,
        },
        "protein_g": {
            "pairs": [(1.6, 0), (3.2, 1), (4.8, 2), (6.4, 3), (8.0, 4), (9.6, 5), (11.6, 6), (13.9, 7), (16.7, 8), (20.0, 9)],
            "cap": 10,
        },
        "fibre_g": {
            "pairs": [(0.9, 0), (1.9, 1), (2.8, 2), (3.7, 3), (4.7, 4)],
            "cap": 5,
        },
    },
    # (highest final score, stars); anything above the last bound gets the cap
    "stars": {
        "pairs": [(-11, 5.0), (-7, 4.5), (-2, 4.0), (2, 3.5), (6, 3.0), (11, 2.5), (15, 2.0), (20, 1.5), (24, 1.0)],
        "cap": 0.5,
    },
}

# Protein only counts when baseline points stay under this, unless fv points reach FVNL_PROTEIN_POINTS
PROTEIN_BASELINE_LIMIT = 13
FVNL_PROTEIN_POINTS = 5


def _score_from_upper_bounds(value: Optional[float], thresholds: List[tuple], cap_points: Optional[float] = None):
    """Assign points based on ordered (upper_bound, points) pairs."""
    if value is None or pd.isna(value):
        return 0
    for upper_bound, points in thresholds:
        if value <= upper_bound:
            return points
    return cap_points if cap_points is not None else 0


def _points(group: str, component: str, value: Optional[float]) -> int:
    cfg = HSR_THRESHOLDS[group][component]
    return _score_from_upper_bounds(value, cfg["pairs"], cap_points=cfg["cap"])


def _missing(value: Any) -> bool:
    return value is None or pd.isna(value)


def fvnl_percentage(concentrated_pct: float, non_concentrated_pct: float) -> float:
    """
    Combined fruit/vegetable/nut/legume percentage with concentrated content
    counted twice, as the HSR calculator does.
    """
    concentrated_pct = 0.0 if _missing(concentrated_pct) else float(concentrated_pct)
    non_concentrated_pct = 0.0 if _missing(non_concentrated_pct) else float(non_concentrated_pct)
    if concentrated_pct <= 0:
        return float(np.clip(non_concentrated_pct, 0, 100))
    combined = 100 * (non_concentrated_pct + 2 * concentrated_pct) / (100 + concentrated_pct)
    return float(np.clip(combined, 0, 100))


def health_star_rating(
    energy: Optional[float],
    saturated_fat: Optional[float],
    sugar: Optional[float],
    sodium: Optional[float],
    concentrated_fv_pct: Optional[float],
    non_concentrated_fv_pct: Optional[float],
    protein: Optional[float],
    fibre: Optional[float],
) -> Optional[float]:
    """
    Calculate the Health Star Rating of a category 2 food.

    Args:
        energy: Energy in kJ per 100g
        saturated_fat: Saturated fat in g per 100g
        sugar: Total sugars in g per 100g
        sodium: Sodium in mg per 100g
        concentrated_fv_pct: Concentrated fruit/vegetable content (%)
        non_concentrated_fv_pct: Non-concentrated fruit/vegetable content (%)
        protein: Protein in g per 100g
        fibre: Dietary fibre in g per 100g

    Returns:
        float or None: Stars from 0.5 to 5 in half-star steps, or None when a
                       baseline nutrient is missing
    """
    if any(_missing(v) for v in (energy, saturated_fat, sugar, sodium)):
        return None

    baseline_points = (
        _points("baseline", "energy_kj", energy)
        + _points("baseline", "saturated_fat_g", saturated_fat)
        + _points("baseline", "total_sugars_g", sugar)
        + _points("baseline", "sodium_mg", sodium)
    )

    fvnl_points = _points("modifying", "fvnl_pct", fvnl_percentage(concentrated_fv_pct, non_concentrated_fv_pct))
    protein_points = _points("modifying", "protein_g", protein)
    fibre_points = _points("modifying", "fibre_g", fibre)

    if baseline_points >= PROTEIN_BASELINE_LIMIT and fvnl_points < FVNL_PROTEIN_POINTS:
        protein_points = 0

    final_score = baseline_points - fvnl_points - protein_points - fibre_points

    stars_cfg = HSR_THRESHOLDS["stars"]
    return float(_score_from_upper_bounds(final_score, stars_cfg["pairs"], cap_points=stars_cfg["cap"]))
