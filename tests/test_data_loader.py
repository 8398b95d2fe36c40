"""
Tests for loading and normalising the record and category lookup tables.
"""
import pandas as pd
import pytest

from snackrating.data_loader import load_category_lookup, load_records, normalize_records

RECORDS_CSV = """id,name,ingredients,ingredients_viewmore,nutrition,energy,saturated,sugar,sodium,protein
101,Apple Bar,"Oats, Apple Puree 20%",NULL,Energy 1500kJ Sodium 120mg,1500kJ,1.2g,8g,120mg,null
102,Crisps,Potato,,Energy 2100kJ,2100kJ,NULL,1g,500mg,6g
,NULL,null,NULL,null,,null,,,
"""

LOOKUP_CSV = """term,non_concentrated,concentrated
apple,1,
Puree,,1
sugar,0,0
"""


@pytest.fixture
def records_path(tmp_path):
    path = tmp_path / "snacks.csv"
    path.write_text(RECORDS_CSV)
    return str(path)


class TestLoadRecords:

    def test_case_folds_text(self, records_path):
        records = load_records(records_path)
        assert records.loc[0, "name"] == "apple bar"
        assert records.loc[0, "nutrition"] == "energy 1500kj sodium 120mg"

    def test_null_sentinel_becomes_missing(self, records_path):
        records = load_records(records_path)
        assert records.loc[0, "ingredients_viewmore"] is None
        assert records.loc[0, "protein"] is None
        assert records.loc[1, "saturated"] is None
        assert records.loc[1, "ingredients_viewmore"] is None

    def test_drops_rows_without_any_content(self, records_path):
        records = load_records(records_path)
        assert list(records["id"]) == ["101", "102"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_records(str(tmp_path / "nope.csv"))


class TestNormalizeRecords:

    def test_adds_missing_columns(self):
        records = normalize_records(pd.DataFrame({"id": ["1"], "energy": ["100KJ"]}))
        assert records.loc[0, "energy"] == "100kj"
        assert records.loc[0, "ingredients"] is None
        assert records.loc[0, "protein"] is None

    def test_string_dtype_columns_give_none(self):
        """String-typed input columns still yield None, not NaN, for the null marker."""
        raw = pd.DataFrame({
            "id": pd.Series(["1", "2"], dtype="string"),
            "energy": pd.Series(["null", " 250KJ "], dtype="string"),
            "protein": pd.Series(["", "NULL"], dtype="string"),
        })
        records = normalize_records(raw)

        assert records["energy"].dtype == object
        assert records.loc[0, "energy"] is None
        assert records.loc[1, "energy"] == "250kj"
        assert records.loc[0, "protein"] is None
        assert records.loc[1, "protein"] is None


class TestLoadCategoryLookup:

    def test_reads_flags(self, tmp_path):
        path = tmp_path / "lookup.csv"
        path.write_text(LOOKUP_CSV)
        lookup = load_category_lookup(str(path))

        assert lookup.non_concentrated_terms == frozenset({"apple"})
        assert lookup.concentrated_terms == frozenset({"puree"})

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_category_lookup(str(tmp_path / "nope.csv"))
