"""Two-round grid search over the random-forest ``max_features`` parameter."""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union
import logging

import numpy as np
import pandas as pd

from ..data.schema import ColumnRef, FeatureColumnSelector, ResolutionMode
from ..exceptions import ConfigurationError
from .classifier import ClassifierTrainer, HyperparameterCandidateResult, rank_candidates

logger = logging.getLogger(__name__)


def first_round_grid(n_features: int, grid_size: int = 11) -> List[int]:
    """Coarse grid over ``[2, n_features]``.

    ``grid_size - 1`` evenly spaced values plus ``round(sqrt(n_features))``
    (clamped into the same range), deduplicated and sorted. With one feature
    or none the grid is the single value ``1``.
    """
    if grid_size < 2:
        raise ConfigurationError(f"First round grid size must be at least 2, got {grid_size}")
    if n_features <= 1:
        return [1]

    spaced = np.round(np.linspace(2, n_features, grid_size - 1)).astype(int)
    sqrt_value = int(np.clip(np.round(np.sqrt(n_features)), 2, n_features))
    return sorted(set(spaced.tolist()) | {sqrt_value})


def second_round_grid(low: int, high: int, grid_size: int = 5) -> List[int]:
    """Evenly spaced integers between ``low`` and ``high`` inclusive."""
    if grid_size < 1:
        raise ConfigurationError(f"Second round grid size must be at least 1, got {grid_size}")
    low, high = min(low, high), max(low, high)
    return sorted(set(np.round(np.linspace(low, high, grid_size)).astype(int).tolist()))


@dataclass(frozen=True)
class TuningResult:
    """Winner of the search plus the raw tables of both rounds."""

    best_hyperparameter: int
    round1_results: Tuple[HyperparameterCandidateResult, ...]
    round2_results: Tuple[HyperparameterCandidateResult, ...]

    @property
    def best_result(self) -> HyperparameterCandidateResult:
        """Round-2 entry of the winning value."""
        return rank_candidates(self.round2_results)[0]

    def to_dataframe(self) -> pd.DataFrame:
        """Accuracy table of both rounds, one row per candidate."""
        rows = []
        for round_no, results in ((1, self.round1_results), (2, self.round2_results)):
            for r in results:
                rows.append({"round": round_no, **r.to_dict()})
        return pd.DataFrame(rows)


class HyperparameterTuner:
    """Coarse scan of ``max_features`` followed by refinement around the top two."""

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

    def tune(
        self,
        training_data: pd.DataFrame,
        first_round_grid_size: int = 11,
        second_round_grid_size: int = 5
    ) -> TuningResult:
        """Run both search rounds on ``training_data``.

        Args:
            training_data: Labelled variant table.
            first_round_grid_size: Size of the coarse grid (before adding sqrt(F)).
            second_round_grid_size: Size of the refined grid.

        Returns:
            TuningResult with the best value and both rounds' accuracy tables.
        """
        if second_round_grid_size < 1:
            raise ConfigurationError(
                f"Second round grid size must be at least 1, got {second_round_grid_size}"
            )

        selection = self.selector.select_columns(
            training_data, self.resolution_mode, self.extra_features
        )
        X = selection.features(training_data)
        y = selection.labels(training_data)

        grid1 = first_round_grid(selection.n_features, first_round_grid_size)
        logger.info(f"Round 1: {len(grid1)} candidates over {selection.n_features} features: {grid1}")
        round1 = self.trainer.cross_validate(X, y, grid1)

        top_two = rank_candidates(round1)[:2]
        values = [r.value for r in top_two]
        grid2 = second_round_grid(min(values), max(values), second_round_grid_size)
        logger.info(f"Round 2: refining between {min(values)} and {max(values)}: {grid2}")
        round2 = self.trainer.cross_validate(X, y, grid2)

        best = rank_candidates(round2)[0]
        logger.info(f"Best max_features={best.value} (accuracy {best.mean_accuracy:.4f})")

        return TuningResult(
            best_hyperparameter=best.value,
            round1_results=tuple(round1),
            round2_results=tuple(round2)
        )
