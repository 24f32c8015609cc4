"""Final model fitting and model persistence."""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple, Union
from pathlib import Path
import json
import logging
import pickle

import pandas as pd

from ..data.io import write_files_atomically
from ..data.schema import ColumnRef, FeatureColumnSelector, ResolutionMode
from ..exceptions import ConfigurationError, ExternalIOError
from .classifier import FOREST_STEP, ClassifierTrainer

logger = logging.getLogger(__name__)

ARTIFACT_FORMAT_VERSION = 1


@dataclass(frozen=True)
class ModelArtifact:
    """A fitted classifier together with the schema it was trained on."""

    model: Any
    feature_names: Tuple[str, ...]
    label_column: str
    hyperparameter: int
    resolution_mode: ResolutionMode
    classes: Tuple[str, ...]

    def predict_proba(self, X: pd.DataFrame):
        """Class probabilities, columns ordered as ``classes``."""
        return self.model.predict_proba(X)

    def metadata(self) -> Dict[str, Any]:
        """JSON-serializable description of the artifact."""
        return {
            "format_version": ARTIFACT_FORMAT_VERSION,
            "feature_names": list(self.feature_names),
            "label_column": self.label_column,
            "hyperparameter": self.hyperparameter,
            "resolution_mode": self.resolution_mode.value,
            "classes": list(self.classes)
        }


class ModelTrainer:
    """Fit the final classifier on the full training set."""

    def __init__(
        self,
        selector: FeatureColumnSelector,
        trainer: ClassifierTrainer,
        resolution_mode: Union[str, ResolutionMode] = ResolutionMode.SHORT_CODE,
        extra_features: Optional[Sequence[ColumnRef]] = None
    ):
        self.selector = selector
        self.trainer = trainer
        self.resolution_mode = ResolutionMode.parse(resolution_mode)
        self.extra_features = list(extra_features) if extra_features else None

    def train_final(
        self,
        training_data: pd.DataFrame,
        hyperparameter: int,
        save_to: Optional[Union[str, Path]] = None
    ) -> ModelArtifact:
        """Train once, without cross-validation, and optionally persist.

        Args:
            training_data: Labelled variant table.
            hyperparameter: ``max_features`` value, usually from tuning.
            save_to: Artifact path; ``.pkl``/``.json`` files are written next to it.

        Returns:
            ModelArtifact.
        """
        selection = self.selector.select_columns(
            training_data, self.resolution_mode, self.extra_features
        )
        if not 1 <= int(hyperparameter) <= selection.n_features:
            raise ConfigurationError(
                f"max_features={hyperparameter} outside [1, {selection.n_features}]"
            )

        X = selection.features(training_data)
        y = selection.labels(training_data)

        logger.info(
            f"Training final model on {len(X)} records, {selection.n_features} features, "
            f"max_features={hyperparameter}"
        )
        model = self.trainer.fit(X, y, int(hyperparameter))

        artifact = ModelArtifact(
            model=model,
            feature_names=selection.feature_names,
            label_column=selection.label_column,
            hyperparameter=int(hyperparameter),
            resolution_mode=selection.resolution_mode,
            classes=tuple(str(c) for c in model.classes_)
        )

        if save_to is not None:
            save_artifact(artifact, Path(save_to))

        return artifact


def save_artifact(artifact: ModelArtifact, path: Union[str, Path]) -> None:
    """Save model to ``<path>.pkl`` with a ``<path>.json`` metadata sidecar."""
    path = Path(path)
    model_path = path.with_suffix(".pkl")
    meta_path = path.with_suffix(".json")

    write_files_atomically({
        model_path: pickle.dumps(artifact.model),
        meta_path: json.dumps(artifact.metadata(), indent=2).encode("utf-8")
    })

    logger.info(f"Model saved to {model_path}")


def load_artifact(path: Union[str, Path]) -> ModelArtifact:
    """Load a model written by ``save_artifact``."""
    path = Path(path)
    model_path = path.with_suffix(".pkl")
    meta_path = path.with_suffix(".json")

    try:
        with open(meta_path, "r") as f:
            metadata = json.load(f)
        with open(model_path, "rb") as f:
            model = pickle.load(f)
    except (OSError, ValueError, pickle.UnpicklingError) as e:
        raise ExternalIOError(f"Could not load model from {path}: {e}", path=path, operation="read") from e

    return ModelArtifact(
        model=model,
        feature_names=tuple(metadata["feature_names"]),
        label_column=metadata["label_column"],
        hyperparameter=int(metadata["hyperparameter"]),
        resolution_mode=ResolutionMode.parse(metadata["resolution_mode"]),
        classes=tuple(metadata["classes"])
    )


def feature_importance(artifact: ModelArtifact) -> pd.DataFrame:
    """Get feature importance ranking."""
    forest = artifact.model.named_steps[FOREST_STEP]
    importance_df = pd.DataFrame({
        "feature": list(artifact.feature_names),
        "importance": forest.feature_importances_
    })
    return importance_df.sort_values("importance", ascending=False).reset_index(drop=True)
