"""Scoring unseen variants with a trained model."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union
from pathlib import Path
import logging

import numpy as np
import pandas as pd

from ..data.io import write_table
from ..data.schema import ColumnRef, FeatureColumnSelector, ResolutionMode
from ..exceptions import ConfigurationError, DataShapeError
from .training import ModelArtifact

logger = logging.getLogger(__name__)

PATHOGENIC_MARKER = "pathogenic"
SCORE_COLUMN = "score"


@dataclass
class PredictionResult:
    """Prediction result for a variant."""

    score: float
    coordinate: Any
    allele_id: Optional[Any] = None
    additional: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self, allele_id_column: Optional[str] = None) -> Dict[str, Any]:
        """Convert to dictionary in export column order."""
        row = {SCORE_COLUMN: self.score, "coordinate": self.coordinate}
        if allele_id_column is not None:
            row[allele_id_column] = self.allele_id
        row.update(self.additional)
        return row


@dataclass(frozen=True)
class PredictionOptions:
    """Caller choices for one scoring call."""

    resolution_mode: Union[str, ResolutionMode] = ResolutionMode.SHORT_CODE
    extra_features: Optional[Sequence[ColumnRef]] = None
    include_allele_id: bool = False
    additional_columns: Optional[Sequence[str]] = None
    export_path: Optional[Path] = None
    require_label: bool = True


def find_pathogenic_class(classes: Sequence[str]) -> str:
    """Return the single class name containing "pathogenic" (any case)."""
    matches = [c for c in classes if PATHOGENIC_MARKER in str(c).lower()]
    if len(matches) != 1:
        raise ConfigurationError(
            f"Expected exactly one pathogenic class, found {len(matches)} in {list(classes)}",
            details={"classes": list(classes), "matches": matches}
        )
    return matches[0]


class Predictor:
    """Apply a ModelArtifact to a table of unseen variants."""

    def __init__(
        self,
        selector: FeatureColumnSelector,
        coordinate_column: str = "coordinate",
        allele_id_column: str = "AlleleID"
    ):
        """Initialize predictor.

        Args:
            selector: Resolves feature columns of the unseen table.
            coordinate_column: Column copied into every result as ``coordinate``.
            allele_id_column: Column copied when allele ids are requested.
        """
        self.selector = selector
        self.coordinate_column = coordinate_column
        self.allele_id_column = allele_id_column

    def predict(
        self,
        model: ModelArtifact,
        unknown_data: pd.DataFrame,
        options: Optional[PredictionOptions] = None
    ) -> List[PredictionResult]:
        """Score every record of ``unknown_data``.

        Features are resolved on the unseen table's own schema; every feature
        the model was trained on must be present. If ``options.export_path``
        is set the result table is written there once scoring has succeeded.

        Returns:
            One PredictionResult per input row, in input order.
        """
        options = options or PredictionOptions()
        additional = list(options.additional_columns or [])

        selection = self.selector.select_columns(
            unknown_data,
            options.resolution_mode,
            options.extra_features,
            require_label=options.require_label
        )

        missing = [f for f in model.feature_names if f not in selection.feature_names]
        if missing:
            raise DataShapeError(
                f"{len(missing)} model feature(s) not found in unseen data: {missing[:10]}",
                columns=missing
            )
        unused = set(selection.feature_names) - set(model.feature_names)
        if unused:
            logger.warning(f"Ignoring {len(unused)} feature columns the model was not trained on")

        self._check_passthrough_columns(unknown_data, options.include_allele_id, additional)
        positive_class = find_pathogenic_class(model.classes)
        class_index = list(model.classes).index(positive_class)

        X = selection.features(unknown_data, order=model.feature_names)
        proba = np.asarray(model.predict_proba(X))
        if proba.shape[0] != len(unknown_data):
            raise DataShapeError(
                f"Model returned {proba.shape[0]} rows for {len(unknown_data)} input records"
            )
        scores = proba[:, class_index]

        coordinates = unknown_data[self.coordinate_column].tolist()
        allele_ids = (
            unknown_data[self.allele_id_column].tolist()
            if options.include_allele_id else [None] * len(unknown_data)
        )
        extra_values = unknown_data[additional].to_dict(orient="records") if additional else None

        results = [
            PredictionResult(
                score=float(scores[i]),
                coordinate=coordinates[i],
                allele_id=allele_ids[i],
                additional=extra_values[i] if extra_values else {}
            )
            for i in range(len(unknown_data))
        ]
        logger.info(f"Scored {len(results)} records with positive class '{positive_class}'")

        if options.export_path is not None:
            self.export(results, options)

        return results

    def predict_table(
        self,
        model: ModelArtifact,
        unknown_data: pd.DataFrame,
        options: Optional[PredictionOptions] = None
    ) -> pd.DataFrame:
        """Score ``unknown_data`` and return the export table."""
        options = options or PredictionOptions()
        return self.to_dataframe(self.predict(model, unknown_data, options), options)

    def to_dataframe(
        self,
        results: List[PredictionResult],
        options: PredictionOptions
    ) -> pd.DataFrame:
        """Assemble results into columns ``score, coordinate, [allele id], [additional]``."""
        allele_column = self.allele_id_column if options.include_allele_id else None
        columns = [SCORE_COLUMN, "coordinate"]
        if allele_column is not None:
            columns.append(allele_column)
        columns.extend(options.additional_columns or [])

        return pd.DataFrame([r.to_dict(allele_column) for r in results], columns=columns)

    def export(self, results: List[PredictionResult], options: PredictionOptions) -> Path:
        """Write the assembled table to ``options.export_path``."""
        if options.export_path is None:
            raise ConfigurationError("No export path given")
        return write_table(self.to_dataframe(results, options), options.export_path)

    def _check_passthrough_columns(
        self,
        df: pd.DataFrame,
        include_allele_id: bool,
        additional: List[str]
    ) -> None:
        """All copied columns must exist before any scoring happens."""
        required = [self.coordinate_column]
        if include_allele_id:
            required.append(self.allele_id_column)
        missing = [c for c in required + additional if c not in df.columns]
        if missing:
            raise DataShapeError(f"Requested columns not found in unseen data: {missing}", columns=missing)

        reserved = {SCORE_COLUMN, "coordinate"}
        if include_allele_id:
            reserved.add(self.allele_id_column)
        clashes = [c for c in additional if c in reserved]
        if clashes or len(set(additional)) != len(additional):
            raise DataShapeError(f"Duplicate output columns requested: {additional}", columns=clashes)
