"""Unit tests for dataset IO and feature column selection."""

import pytest
import numpy as np
import pandas as pd

from phylopath.data.io import load_dataset, load_reference_list, split_train_test, write_table
from phylopath.data.schema import FeatureColumnSelector, ReferenceLists, ResolutionMode
from phylopath.exceptions import ConfigurationError, DataShapeError, ExternalIOError

from conftest import SHORT_CODES, LONG_NAMES


class TestResolutionMode:
    """Tests for ResolutionMode parsing."""

    def test_parse_values(self):
        """Test parsing enum values and names."""
        assert ResolutionMode.parse("short_code") is ResolutionMode.SHORT_CODE
        assert ResolutionMode.parse("LONG_NAME") is ResolutionMode.LONG_NAME
        assert ResolutionMode.parse(ResolutionMode.LONG_NAME) is ResolutionMode.LONG_NAME

    def test_parse_invalid(self):
        """Test invalid mode is a configuration error."""
        with pytest.raises(ConfigurationError):
            ResolutionMode.parse("latin_name")


class TestReferenceLists:
    """Tests for reference list loading."""

    def test_load_text_list(self, reference_lists):
        """Test one-per-line list skips comments."""
        assert reference_lists.load(ResolutionMode.SHORT_CODE) == SHORT_CODES

    def test_load_table_column(self, reference_lists):
        """Test named column of a TSV table."""
        assert reference_lists.load(ResolutionMode.LONG_NAME) == LONG_NAMES

    def test_load_first_column_by_default(self, tmp_path):
        """Test first column used when no column is configured."""
        path = tmp_path / "orgs.csv"
        pd.DataFrame({"code": ["mm39", "rn7", "mm39"], "x": [1, 2, 3]}).to_csv(path, index=False)

        assert load_reference_list(path) == ["mm39", "rn7"]

    def test_missing_file(self, tmp_path):
        """Test unreadable list raises ExternalIOError."""
        with pytest.raises(ExternalIOError):
            load_reference_list(tmp_path / "missing.txt")

    def test_unconfigured_mode(self):
        """Test mode without a configured path."""
        lists = ReferenceLists(short_code_path=None)
        with pytest.raises(ConfigurationError):
            lists.load(ResolutionMode.SHORT_CODE)

    def test_from_config(self):
        """Test construction from the config section."""
        lists = ReferenceLists.from_config({"short_codes": "a.txt", "long_names": "b.tsv"})
        assert lists.short_code_path.name == "a.txt"
        assert lists.long_name_path.name == "b.tsv"


class TestFeatureColumnSelector:
    """Tests for FeatureColumnSelector."""

    def test_intersection_preserves_dataset_order(self, selector):
        """Test features are the ordered intersection with the reference list."""
        columns = ["coordinate", "rn7", "hg38", "panTro6", "significance", "mm39"]
        selection = selector.select_columns(columns, "short_code")

        assert selection.feature_names == ("rn7", "panTro6", "mm39")
        assert selection.feature_indices == (1, 3, 5)
        assert selection.label_index == 4
        assert selection.label_column == "significance"

    def test_long_name_mode(self, selector):
        """Test long-name resolution ignores short codes."""
        columns = ["significance", "Mus musculus", "mm39", "Bos taurus"]
        selection = selector.select_columns(columns, ResolutionMode.LONG_NAME)

        assert selection.feature_names == ("Mus musculus", "Bos taurus")
        assert selection.resolution_mode is ResolutionMode.LONG_NAME

    def test_extra_features_by_name_and_position(self, selector):
        """Test extras are appended regardless of reference membership."""
        columns = ["coordinate", "mm39", "phyloP", "significance", "gerp"]
        selection = selector.select_columns(columns, "short_code", extra_features=["gerp", 2, "mm39"])

        assert selection.feature_names == ("mm39", "gerp", "phyloP")
        assert selection.feature_indices == (1, 4, 2)

    def test_unknown_extra_feature(self, selector):
        """Test unknown extra column is rejected."""
        with pytest.raises(ConfigurationError):
            selector.select_columns(["mm39", "significance"], "short_code", extra_features=["gerp"])

        with pytest.raises(ConfigurationError):
            selector.select_columns(["mm39", "significance"], "short_code", extra_features=[9])

    def test_label_cannot_be_extra_feature(self, selector):
        """Test label column is never a feature."""
        with pytest.raises(ConfigurationError):
            selector.select_columns(["mm39", "significance"], "short_code", extra_features=["significance"])

    def test_missing_label(self, selector):
        """Test missing label column is fatal."""
        with pytest.raises(ConfigurationError, match="significance"):
            selector.select_columns(["mm39", "rn7"], "short_code")

    def test_missing_label_allowed(self, selector):
        """Test label can be optional for unlabelled tables."""
        selection = selector.select_columns(["mm39", "rn7"], "short_code", require_label=False)

        assert selection.label_index is None
        assert selection.n_features == 2

    def test_empty_intersection(self, selector):
        """Test no matching organisms is fatal."""
        with pytest.raises(ConfigurationError):
            selector.select_columns(["hg38", "significance"], "short_code")

    def test_selection_slices_dataframe(self, selector, make_dataset):
        """Test features and labels extracted by index."""
        df = make_dataset(n_rows=10)
        selection = selector.select_columns(df, "short_code")

        X = selection.features(df)
        assert list(X.columns) == ["panTro6", "mm39", "rn7"]
        assert "hg38" not in X.columns
        assert selection.labels(df).tolist() == df["significance"].tolist()

    def test_features_in_requested_order(self, selector, make_dataset):
        """Test the feature block can follow another schema's order."""
        df = make_dataset(n_rows=10)
        selection = selector.select_columns(df, "short_code")

        X = selection.features(df, order=["rn7", "panTro6", "mm39"])
        assert list(X.columns) == ["rn7", "panTro6", "mm39"]
        assert X["rn7"].tolist() == df["rn7"].tolist()

    def test_missing_labels(self, selector, make_dataset):
        """Test unlabelled records are reported instead of becoming a 'nan' class."""
        df = make_dataset(n_rows=10)
        df.loc[:2, "significance"] = np.nan
        selection = selector.select_columns(df, "short_code")

        with pytest.raises(DataShapeError, match="3 of 10"):
            selection.labels(df)

    def test_custom_label_column(self, reference_lists):
        """Test configurable label name."""
        selector = FeatureColumnSelector(reference_lists, label_column="ClinicalSignificance")
        selection = selector.select_columns(["ClinicalSignificance", "mm39"], "short_code")
        assert selection.label_index == 0


class TestDatasetIO:
    """Tests for table reading and writing."""

    def test_tsv_round_trip(self, tmp_path, make_dataset):
        """Test TSV written and read back."""
        df = make_dataset(n_rows=10)
        path = write_table(df, tmp_path / "data.tsv")
        loaded = load_dataset(path)

        assert list(loaded.columns) == list(df.columns)
        assert len(loaded) == 10

    def test_csv_delimiter(self, tmp_path, make_dataset):
        """Test .csv uses commas."""
        path = write_table(make_dataset(n_rows=4), tmp_path / "data.csv")
        assert "," in path.read_text().splitlines()[0]

    def test_excel(self, tmp_path, make_dataset):
        """Test Excel workbooks are read."""
        df = make_dataset(n_rows=6)
        path = tmp_path / "data.xlsx"
        df.to_excel(path, index=False)

        loaded = load_dataset(path)
        assert list(loaded.columns) == list(df.columns)

    def test_missing_dataset(self, tmp_path):
        """Test missing file raises ExternalIOError."""
        with pytest.raises(ExternalIOError):
            load_dataset(tmp_path / "nope.tsv")

    def test_failed_write_leaves_nothing(self, tmp_path, make_dataset):
        """Test failed write raises and leaves no file."""
        blocker = tmp_path / "blocker"
        blocker.write_text("x")

        with pytest.raises(ExternalIOError):
            write_table(make_dataset(n_rows=4), blocker / "out.tsv")
        assert blocker.read_text() == "x"

    def test_split_train_test(self, make_dataset):
        """Test stratified hold-out split."""
        df = make_dataset(n_rows=40)
        train_df, test_df = split_train_test(df, test_fraction=0.25, random_state=1)

        assert len(train_df) == 30
        assert len(test_df) == 10
        assert (test_df["significance"] == "Pathogenic").sum() == 5

    def test_split_invalid_fraction(self, make_dataset):
        """Test invalid fraction."""
        with pytest.raises(ConfigurationError):
            split_train_test(make_dataset(n_rows=10), test_fraction=1.5)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
