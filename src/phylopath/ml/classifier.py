"""Random-forest trainer used as the black-box classifier for the pipeline."""

from functools import cmp_to_key
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple
import logging

import numpy as np
import pandas as pd

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

FOREST_STEP = "forest"


@dataclass(frozen=True)
class HyperparameterCandidateResult:
    """Cross-validated accuracy of one ``max_features`` value."""

    value: int
    mean_accuracy: float
    std_accuracy: float
    fold_accuracies: Tuple[float, ...]

    def rank_key(self) -> Tuple[float, int]:
        """Higher accuracy first; on equal accuracy the smaller value first."""
        return (-self.mean_accuracy, self.value)

    def outranks(self, other: "HyperparameterCandidateResult") -> bool:
        """Check if this candidate should be preferred over ``other``."""
        return self.rank_key() < other.rank_key()

    @property
    def n_folds(self) -> int:
        """Number of fold evaluations behind the mean."""
        return len(self.fold_accuracies)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "max_features": self.value,
            "mean_accuracy": self.mean_accuracy,
            "std_accuracy": self.std_accuracy,
            "n_folds": self.n_folds
        }


def rank_candidates(
    results: Sequence[HyperparameterCandidateResult]
) -> List[HyperparameterCandidateResult]:
    """Order candidates best first."""
    def compare(a, b):
        if a.outranks(b):
            return -1
        return 1 if b.outranks(a) else 0

    return sorted(results, key=cmp_to_key(compare))


class ClassifierTrainer:
    """Build, cross-validate and fit random-forest classifiers.

    ``max_features`` (the number of features tried at each split) is the only
    tuned hyperparameter; everything else is fixed at construction time.
    Missing feature values are median-imputed inside the pipeline so that
    imputation is learned on training folds only.
    """

    DEFAULT_PARAMS = {
        "n_estimators": 500,
        "min_samples_leaf": 1,
    }

    def __init__(
        self,
        n_folds: int = 5,
        n_repeats: int = 10,
        random_state: int = 42,
        n_jobs: int = -1,
        impute_strategy: str = "median",
        **forest_params
    ):
        """Initialize trainer.

        Args:
            n_folds: Folds per cross-validation repeat.
            n_repeats: Number of repeated stratified splits.
            random_state: Seed for the forest and the fold assignment.
            n_jobs: Parallel workers for cross-validation fits.
            impute_strategy: ``SimpleImputer`` strategy for missing values.
            **forest_params: Extra ``RandomForestClassifier`` parameters.
        """
        self.n_folds = n_folds
        self.n_repeats = n_repeats
        self.random_state = random_state
        self.n_jobs = n_jobs
        self.impute_strategy = impute_strategy
        self.forest_params = {**self.DEFAULT_PARAMS, **forest_params}

    def build(self, max_features: int):
        """Create an unfitted imputer + random forest pipeline."""
        from sklearn.ensemble import RandomForestClassifier
        from sklearn.impute import SimpleImputer
        from sklearn.pipeline import Pipeline

        forest = RandomForestClassifier(
            max_features=int(max_features),
            random_state=self.random_state,
            **self.forest_params
        )
        return Pipeline([
            ("impute", SimpleImputer(strategy=self.impute_strategy, keep_empty_features=True)),
            (FOREST_STEP, forest)
        ])

    def cross_validate(
        self,
        X: pd.DataFrame,
        y: pd.Series,
        grid: Sequence[int]
    ) -> List[HyperparameterCandidateResult]:
        """Score every grid value with repeated stratified k-fold CV.

        Returns:
            One result per grid value, in grid order.
        """
        from sklearn.model_selection import GridSearchCV, RepeatedStratifiedKFold

        self._check_class_counts(y)

        cv = RepeatedStratifiedKFold(
            n_splits=self.n_folds,
            n_repeats=self.n_repeats,
            random_state=self.random_state
        )
        search = GridSearchCV(
            estimator=self.build(grid[0]),
            param_grid={f"{FOREST_STEP}__max_features": [int(v) for v in grid]},
            scoring="accuracy",
            cv=cv,
            n_jobs=self.n_jobs,
            refit=False,
            error_score="raise"
        )
        search.fit(X, y)

        cv_results = search.cv_results_
        n_splits = self.n_folds * self.n_repeats
        results = []
        for i, params in enumerate(cv_results["params"]):
            folds = tuple(
                float(cv_results[f"split{k}_test_score"][i]) for k in range(n_splits)
            )
            results.append(HyperparameterCandidateResult(
                value=int(params[f"{FOREST_STEP}__max_features"]),
                mean_accuracy=float(cv_results["mean_test_score"][i]),
                std_accuracy=float(cv_results["std_test_score"][i]),
                fold_accuracies=folds
            ))

        for r in results:
            logger.debug(f"max_features={r.value}: accuracy {r.mean_accuracy:.4f} +/- {r.std_accuracy:.4f}")
        return results

    def fit(self, X: pd.DataFrame, y: pd.Series, max_features: int):
        """Fit a single model on all of ``X``."""
        model = self.build(max_features)
        model.fit(X, y)
        return model

    def _check_class_counts(self, y: pd.Series) -> None:
        """Stratified folds need at least one class that fills every fold."""
        counts = pd.Series(np.asarray(y)).value_counts()
        if len(counts) < 2:
            raise ConfigurationError("Training data must contain at least two label classes")
        if (counts < self.n_folds).all():
            raise ConfigurationError(
                f"Every class has fewer than {self.n_folds} records; cannot build {self.n_folds} folds",
                details={"class_counts": counts.to_dict()}
            )
        if counts.min() < self.n_folds:
            logger.warning(
                f"Class '{counts.idxmin()}' has {counts.min()} records for {self.n_folds} folds; "
                f"some validation folds will not contain it"
            )
