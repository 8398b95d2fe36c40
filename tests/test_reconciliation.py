"""
Tests for nutrient parsing and the row-level structured-vs-table reconciliation.
"""
import math

import numpy as np
import pandas as pd
import pytest

from snackrating.reconciliation import (
    SourceDecision,
    decide_source,
    extract_blob_nutrients,
    parse_nutrient_value,
    reconcile_nutrients,
)

NUTRIENTS = ["energy", "saturated", "sugar", "sodium", "protein"]

FULL_BLOB = (
    "avg. quantity per 100g energy 1900kj protein 6g fat, total 12g "
    "saturated 3.0g carbohydrate 60g sugars 21g sodium 460mg"
)


class TestParseNutrientValue:

    def test_strips_units(self):
        assert parse_nutrient_value("450mg") == 450.0
        assert parse_nutrient_value("3.1g") == 3.1

    def test_thousands_separator(self):
        assert parse_nutrient_value("1,850kj") == 1850.0

    def test_decimal_comma_read_as_thousands_separator(self):
        assert parse_nutrient_value("3,2g") == 32.0
        assert parse_nutrient_value("0,5g") == 5.0

    def test_removes_approx_noise(self):
        assert parse_nutrient_value("approx.3.2g") == 3.2
        assert parse_nutrient_value("approx. 3.2g") == 3.2

    def test_unparsable_is_missing_not_zero(self):
        assert parse_nutrient_value("trace") is None
        assert parse_nutrient_value("(mg)") is None
        assert parse_nutrient_value("approx.") is None

    def test_missing_values(self):
        assert parse_nutrient_value(None) is None
        assert parse_nutrient_value(math.nan) is None
        assert parse_nutrient_value(np.nan) is None

    def test_numbers_pass_through(self):
        assert parse_nutrient_value(5) == 5.0
        assert parse_nutrient_value(2.5) == 2.5

    def test_leading_qualifier(self):
        assert parse_nutrient_value("<1g") == 1.0


class TestExtractBlobNutrients:

    def test_reads_all_nutrients(self):
        assert extract_blob_nutrients(FULL_BLOB) == {
            "energy": 1900.0,
            "saturated": 3.0,
            "sugar": 21.0,
            "sodium": 460.0,
            "protein": 6.0,
        }

    def test_missing_blob(self):
        assert extract_blob_nutrients(None) == {n: None for n in NUTRIENTS}

    def test_first_mention_only(self):
        values = extract_blob_nutrients("sodium (mg) energy 900kj sodium 450mg")
        assert values["sodium"] is None
        assert values["energy"] == 900.0


class TestDecideSource:

    def test_same_presence_keeps_primary(self):
        primary = dict(energy=1, saturated=2, sugar=3, sodium=4, protein=None)
        secondary = dict(energy=9, saturated=9, sugar=9, sodium=9, protein=None)
        assert decide_source(primary, secondary) == SourceDecision.PRIMARY

    def test_missing_primary_uses_blob(self):
        primary = dict(energy=None, saturated=2, sugar=3, sodium=4, protein=5)
        secondary = dict(energy=9, saturated=9, sugar=9, sodium=9, protein=9)
        assert decide_source(primary, secondary) == SourceDecision.BLOB

    def test_added_primary_uses_blob(self):
        primary = dict(energy=1, saturated=2, sugar=3, sodium=4, protein=5)
        secondary = dict(energy=9, saturated=9, sugar=9, sodium=9, protein=np.nan)
        assert decide_source(primary, secondary) == SourceDecision.BLOB


class TestReconcileNutrients:

    @pytest.fixture
    def records(self):
        return pd.DataFrame({
            "id": ["agree", "missing", "added", "both_missing"],
            "nutrition": [
                FULL_BLOB,
                FULL_BLOB,
                "energy 1900kj saturated 3.0g sugars 21g sodium 460mg",
                "saturated 1g sugars 2g sodium 3mg protein 4g",
            ],
            "energy": ["1850kj", None, "1850kj", None],
            "saturated": ["3.1g", "3.1g", "3.1g", "1.5g"],
            "sugar": ["20g", "20g", "20g", "2.5g"],
            "sodium": ["450mg", "450mg", "450mg", "35mg"],
            "protein": ["5g", "5g", "5g", "4.5g"],
        })

    def test_agreeing_row_keeps_structured_values(self, records):
        result = reconcile_nutrients(records).set_index("id")
        row = result.loc["agree"]
        assert row["energy"] == 1850.0
        assert row["saturated"] == 3.1
        assert row["source_decision"] == "primary"

    def test_missing_structured_value_replaces_whole_row(self, records):
        result = reconcile_nutrients(records).set_index("id")
        row = result.loc["missing"]
        assert row["source_decision"] == "blob"
        assert [row[n] for n in NUTRIENTS] == [1900.0, 3.0, 21.0, 460.0, 6.0]

    def test_unsupported_structured_value_replaces_whole_row(self, records):
        result = reconcile_nutrients(records).set_index("id")
        row = result.loc["added"]
        assert row["source_decision"] == "blob"
        assert [row[n] for n in ["energy", "saturated", "sugar", "sodium"]] == [1900.0, 3.0, 21.0, 460.0]
        assert pd.isna(row["protein"])

    def test_absent_in_both_keeps_primary(self, records):
        result = reconcile_nutrients(records).set_index("id")
        row = result.loc["both_missing"]
        assert row["source_decision"] == "primary"
        assert pd.isna(row["energy"])
        assert row["sodium"] == 35.0

    def test_row_level_atomicity(self, records):
        """Any presence mismatch means all five values equal the table values."""
        result = reconcile_nutrients(records)
        for (_, original), (_, reconciled) in zip(records.iterrows(), result.iterrows()):
            blob = extract_blob_nutrients(original["nutrition"])
            primary = {n: parse_nutrient_value(original[n]) for n in NUTRIENTS}
            mismatch = any((primary[n] is None) != (blob[n] is None) for n in NUTRIENTS)
            if mismatch:
                for n in NUTRIENTS:
                    if blob[n] is None:
                        assert pd.isna(reconciled[n])
                    else:
                        assert reconciled[n] == blob[n]

    def test_blob_columns_dropped_and_input_untouched(self, records):
        result = reconcile_nutrients(records)
        assert not [c for c in result.columns if c.endswith("_blob")]
        assert records.loc[0, "energy"] == "1850kj"

    def test_requires_columns(self):
        with pytest.raises(ValueError, match="nutrition"):
            reconcile_nutrients(pd.DataFrame({"energy": ["1g"]}))
