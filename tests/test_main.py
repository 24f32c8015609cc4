"""End-to-end tests for the command line pipeline stages."""

import json

import pytest
import pandas as pd

import main
from phylopath.data.io import write_table


@pytest.fixture
def config(reference_lists):
    """Small, fast pipeline configuration."""
    return {
        "reference": {
            "short_codes": str(reference_lists.short_code_path),
            "long_names": str(reference_lists.long_name_path),
            "long_name_column": "organism",
        },
        "model": {"resolution_mode": "short_code", "n_estimators": 10, "n_jobs": 1, "random_state": 3},
        "tuning": {"n_folds": 5, "n_repeats": 1, "first_round_grid_size": 3, "second_round_grid_size": 2},
        "prediction": {
            "resolution_mode": "short_code",
            "include_allele_id": True,
            "additional_columns": ["GeneSymbol"],
        },
        "evaluation": {"test_fraction": 0.25},
    }


class TestPipelineStages:
    """Tests for main.py stage functions."""

    def test_load_config(self, tmp_path):
        """Test YAML config loading."""
        path = tmp_path / "config.yaml"
        path.write_text("model:\n  n_estimators: 50\n")

        assert main.load_config(path) == {"model": {"n_estimators": 50}}

    def test_full_pipeline(self, tmp_path, config, make_dataset):
        """Test split, tune, train, evaluate and predict."""
        output_dir = tmp_path / "results"
        output_dir.mkdir()
        labelled = write_table(make_dataset(n_rows=60), tmp_path / "labelled.tsv")
        unknown = write_table(
            make_dataset(n_rows=10, seed=8).drop(columns=["significance"]).assign(significance=""),
            tmp_path / "unknown.tsv"
        )

        main.run_full(labelled, output_dir, config, unknown)

        for name in ("model.pkl", "model.json", "tuning_results.tsv", "tuning_curve.html",
                     "feature_importance.tsv", "metrics.json", "predictions.tsv"):
            assert (output_dir / name).exists(), name

        predictions = pd.read_csv(output_dir / "predictions.tsv", sep="\t")
        assert list(predictions.columns) == ["score", "coordinate", "AlleleID", "GeneSymbol"]
        assert len(predictions) == 10

        metrics = json.loads((output_dir / "metrics.json").read_text())
        assert metrics["n_records"] == 15

    def test_full_pipeline_with_extra_features(self, tmp_path, config, make_dataset):
        """Test model extra features carry through evaluation and prediction."""
        config["model"]["extra_features"] = ["hg38"]
        output_dir = tmp_path / "results"
        output_dir.mkdir()
        labelled = write_table(make_dataset(n_rows=60), tmp_path / "labelled.tsv")
        unknown = write_table(make_dataset(n_rows=10, seed=8), tmp_path / "unknown.tsv")

        main.run_full(labelled, output_dir, config, unknown)

        model_meta = json.loads((output_dir / "model.json").read_text())
        assert model_meta["feature_names"][-1] == "hg38"
        assert json.loads((output_dir / "metrics.json").read_text())["n_records"] == 15
        assert len(pd.read_csv(output_dir / "predictions.tsv", sep="\t")) == 10
        assert not list(output_dir.glob(".*.tmp"))

    def test_prediction_extra_features(self):
        """Test prediction extras override the model's and fall back to them."""
        assert main.prediction_extra_features({}) is None
        assert main.prediction_extra_features({"model": {"extra_features": ["hg38"]}}) == ["hg38"]
        assert main.prediction_extra_features({
            "model": {"extra_features": ["hg38"]},
            "prediction": {"extra_features": ["gerp"]},
        }) == ["gerp"]

    def test_training_with_fixed_value(self, tmp_path, config, make_dataset):
        """Test train stage without tuning."""
        labelled = write_table(make_dataset(n_rows=20), tmp_path / "train.tsv")
        artifact = main.run_training(labelled, tmp_path, config, 3)

        assert artifact.hyperparameter == 3
        assert (tmp_path / "model.pkl").exists()
