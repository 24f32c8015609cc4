#!/usr/bin/env python3
"""Conservation-based Pathogenicity Classifier - Main Entry Point."""

import argparse
import json
import logging
from pathlib import Path
from typing import Optional, Tuple
import sys
import yaml

from phylopath.data.io import atomic_writer, load_dataset, split_train_test, write_table
from phylopath.data.schema import FeatureColumnSelector, ReferenceLists
from phylopath.ml.classifier import ClassifierTrainer
from phylopath.ml.evaluation import evaluate
from phylopath.ml.predictor import Predictor, PredictionOptions
from phylopath.ml.training import ModelArtifact, ModelTrainer, feature_importance, load_artifact
from phylopath.ml.tuning import HyperparameterTuner, TuningResult
from phylopath.visualization.plots import PipelinePlotter, write_figure


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure logging."""
    handlers = [logging.StreamHandler(sys.stdout)]

    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers
    )


def load_config(config_path: Path) -> dict:
    """Load configuration from YAML file."""
    with open(config_path) as f:
        return yaml.safe_load(f) or {}


def build_components(config: dict) -> Tuple[FeatureColumnSelector, ClassifierTrainer]:
    """Create the column selector and classifier trainer from config."""
    columns = config.get("columns", {})
    model_cfg = config.get("model", {})
    tuning_cfg = config.get("tuning", {})

    selector = FeatureColumnSelector(
        ReferenceLists.from_config(config.get("reference", {})),
        label_column=columns.get("label", "significance")
    )
    trainer = ClassifierTrainer(
        n_folds=tuning_cfg.get("n_folds", 5),
        n_repeats=tuning_cfg.get("n_repeats", 10),
        random_state=model_cfg.get("random_state", 42),
        n_jobs=model_cfg.get("n_jobs", -1),
        impute_strategy=model_cfg.get("impute_strategy", "median"),
        n_estimators=model_cfg.get("n_estimators", 500)
    )
    return selector, trainer


def build_predictor(config: dict, selector: FeatureColumnSelector) -> Predictor:
    """Create the predictor from the ``columns`` config section."""
    columns = config.get("columns", {})
    return Predictor(
        selector,
        coordinate_column=columns.get("coordinate", "coordinate"),
        allele_id_column=columns.get("allele_id", "AlleleID")
    )


def run_tuning(train_path: Path, output_dir: Path, config: dict) -> TuningResult:
    """Run the two-round max_features search."""
    logger = logging.getLogger(__name__)
    logger.info(f"Tuning on {train_path}")

    selector, trainer = build_components(config)
    model_cfg = config.get("model", {})
    tuning_cfg = config.get("tuning", {})

    tuner = HyperparameterTuner(
        selector,
        trainer,
        resolution_mode=model_cfg.get("resolution_mode", "short_code"),
        extra_features=model_cfg.get("extra_features") or None
    )
    result = tuner.tune(
        load_dataset(train_path),
        first_round_grid_size=tuning_cfg.get("first_round_grid_size", 11),
        second_round_grid_size=tuning_cfg.get("second_round_grid_size", 5)
    )

    write_table(result.to_dataframe(), output_dir / "tuning_results.tsv")
    write_figure(PipelinePlotter().plot_tuning_curve(result), output_dir / "tuning_curve.html")
    logger.info(f"Best max_features: {result.best_hyperparameter}")
    return result


def run_training(
    train_path: Path,
    output_dir: Path,
    config: dict,
    hyperparameter: int
) -> ModelArtifact:
    """Fit and save the final model."""
    logger = logging.getLogger(__name__)
    logger.info(f"Training final model on {train_path} with max_features={hyperparameter}")

    selector, trainer = build_components(config)
    model_cfg = config.get("model", {})

    model_trainer = ModelTrainer(
        selector,
        trainer,
        resolution_mode=model_cfg.get("resolution_mode", "short_code"),
        extra_features=model_cfg.get("extra_features") or None
    )
    artifact = model_trainer.train_final(
        load_dataset(train_path),
        hyperparameter,
        save_to=output_dir / "model"
    )

    write_table(feature_importance(artifact), output_dir / "feature_importance.tsv")
    return artifact


def prediction_extra_features(config: dict) -> Optional[list]:
    """Extra feature columns for scoring; falls back to the ones the model was trained with."""
    return (
        config.get("prediction", {}).get("extra_features")
        or config.get("model", {}).get("extra_features")
        or None
    )


def run_prediction(
    input_path: Path,
    output_dir: Path,
    config: dict,
    model_path: Path
) -> None:
    """Score an unseen table with a saved model."""
    logger = logging.getLogger(__name__)
    logger.info(f"Running pathogenicity prediction on {input_path}")

    selector, _ = build_components(config)
    predictor = build_predictor(config, selector)
    pred_cfg = config.get("prediction", {})

    artifact = load_artifact(model_path)
    options = PredictionOptions(
        resolution_mode=pred_cfg.get("resolution_mode", artifact.resolution_mode),
        extra_features=prediction_extra_features(config),
        include_allele_id=pred_cfg.get("include_allele_id", False),
        additional_columns=pred_cfg.get("additional_columns") or None,
        export_path=output_dir / "predictions.tsv",
        require_label=pred_cfg.get("require_label", True)
    )

    results = predictor.predict(artifact, load_dataset(input_path), options)
    write_figure(
        PipelinePlotter().plot_score_distribution(results),
        output_dir / "score_distribution.html"
    )
    logger.info(f"Predictions saved to {options.export_path}")


def run_evaluation(
    test_path: Path,
    output_dir: Path,
    config: dict,
    model_path: Path
) -> None:
    """Evaluate a saved model on a labelled table."""
    logger = logging.getLogger(__name__)

    selector, _ = build_components(config)
    predictor = build_predictor(config, selector)
    artifact = load_artifact(model_path)

    report = evaluate(
        predictor,
        artifact,
        load_dataset(test_path),
        resolution_mode=config.get("prediction", {}).get("resolution_mode", artifact.resolution_mode),
        extra_features=prediction_extra_features(config),
        threshold=config.get("evaluation", {}).get("threshold", 0.5)
    )

    output_file = output_dir / "metrics.json"
    with atomic_writer(output_file) as f:
        json.dump(report.to_dict(), f, indent=2)
    logger.info(f"Metrics saved to {output_file}")


def run_full(
    input_path: Path,
    output_dir: Path,
    config: dict,
    unknown_path: Optional[Path] = None
) -> None:
    """Split, tune, train, evaluate and optionally score an unseen table."""
    logger = logging.getLogger(__name__)
    eval_cfg = config.get("evaluation", {})

    data = load_dataset(input_path)
    train_df, test_df = split_train_test(
        data,
        label_column=config.get("columns", {}).get("label", "significance"),
        test_fraction=eval_cfg.get("test_fraction", 0.2),
        random_state=config.get("model", {}).get("random_state", 42)
    )
    train_path = write_table(train_df, output_dir / "train.tsv")
    test_path = write_table(test_df, output_dir / "test.tsv")
    logger.info(f"Split {len(data)} records into {len(train_df)} train / {len(test_df)} test")

    tuning = run_tuning(train_path, output_dir, config)
    run_training(train_path, output_dir, config, tuning.best_hyperparameter)
    run_evaluation(test_path, output_dir, config, output_dir / "model")

    if unknown_path:
        run_prediction(unknown_path, output_dir, config, output_dir / "model")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Conservation-based Pathogenicity Classifier",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Tune, train and evaluate on a labelled table
  python main.py --mode full --input clinvar_conservation.tsv --output results/

  # Tune max_features only
  python main.py --mode tune --input train.tsv --output results/

  # Train with a known max_features
  python main.py --mode train --input train.tsv --max-features 12 --output results/

  # Score unseen variants
  python main.py --mode predict --input unknown.xlsx --model results/model --output results/
        """
    )

    parser.add_argument(
        "--mode",
        choices=["full", "tune", "train", "predict", "evaluate"],
        default="full",
        help="Analysis mode (default: full)"
    )

    parser.add_argument(
        "--input", "-i",
        type=Path,
        help="Input table (labelled for tune/train/evaluate/full, unseen for predict)"
    )

    parser.add_argument(
        "--unknown",
        type=Path,
        help="Unseen table to score at the end of full mode"
    )

    parser.add_argument(
        "--output", "-o",
        type=Path,
        default=Path("results"),
        help="Output directory (default: results/)"
    )

    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=Path("config/default.yaml"),
        help="Configuration file (default: config/default.yaml)"
    )

    parser.add_argument(
        "--model",
        type=Path,
        help="Saved model path (without .pkl/.json suffix)"
    )

    parser.add_argument(
        "--max-features",
        type=int,
        help="max_features for train mode (tuned first if omitted)"
    )

    parser.add_argument(
        "--resolution-mode",
        choices=["short_code", "long_name"],
        help="Override the organism naming convention for training and prediction"
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--log-file",
        type=Path,
        help="Log file path"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Re-raise errors with a traceback"
    )

    args = parser.parse_args()

    setup_logging(args.log_level, args.log_file)
    logger = logging.getLogger(__name__)

    args.output.mkdir(parents=True, exist_ok=True)

    config = {}
    if args.config.exists():
        config = load_config(args.config)
        logger.info(f"Loaded configuration from {args.config}")

    if args.resolution_mode:
        config.setdefault("model", {})["resolution_mode"] = args.resolution_mode
        config.setdefault("prediction", {})["resolution_mode"] = args.resolution_mode

    logger.info(f"Pathogenicity Pipeline - Mode: {args.mode}")

    if not args.input:
        parser.error(f"--input required for {args.mode} mode")
    if args.mode in ("predict", "evaluate") and not args.model:
        parser.error(f"--model required for {args.mode} mode")

    try:
        if args.mode == "tune":
            run_tuning(args.input, args.output, config)

        elif args.mode == "train":
            hyperparameter = args.max_features
            if hyperparameter is None:
                hyperparameter = run_tuning(args.input, args.output, config).best_hyperparameter
            run_training(args.input, args.output, config, hyperparameter)

        elif args.mode == "predict":
            run_prediction(args.input, args.output, config, args.model)

        elif args.mode == "evaluate":
            run_evaluation(args.input, args.output, config, args.model)

        elif args.mode == "full":
            logger.info("Running full analysis pipeline")
            run_full(args.input, args.output, config, args.unknown)
            logger.info("Full analysis complete")

        logger.info("Pipeline completed successfully")

    except Exception as e:
        logger.error(f"Pipeline failed: {e}")
        if args.debug:
            raise
        sys.exit(1)


if __name__ == "__main__":
    main()
