"""Hold-out evaluation of a trained model."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union
import logging

import numpy as np
import pandas as pd

from ..data.schema import ColumnRef, ResolutionMode
from .predictor import Predictor, PredictionOptions, find_pathogenic_class
from .training import ModelArtifact

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvaluationReport:
    """Classification metrics on a labelled hold-out table."""

    positive_class: str
    threshold: float
    n_records: int
    accuracy: float
    precision: float
    recall: float
    f1_score: float
    roc_auc: Optional[float]
    confusion_matrix: List[List[int]]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "positive_class": self.positive_class,
            "threshold": self.threshold,
            "n_records": self.n_records,
            "accuracy": self.accuracy,
            "precision": self.precision,
            "recall": self.recall,
            "f1_score": self.f1_score,
            "roc_auc": self.roc_auc,
            "confusion_matrix": self.confusion_matrix
        }


def evaluate(
    predictor: Predictor,
    model: ModelArtifact,
    labelled_data: pd.DataFrame,
    resolution_mode: Union[str, ResolutionMode] = ResolutionMode.SHORT_CODE,
    extra_features: Optional[Sequence[ColumnRef]] = None,
    threshold: float = 0.5
) -> EvaluationReport:
    """Score ``labelled_data`` and compare against its label column.

    Records whose label contains "pathogenic" count as positives. The
    confusion matrix is ``[[TN, FP], [FN, TP]]``.
    """
    from sklearn.metrics import (
        accuracy_score, precision_score, recall_score,
        f1_score, roc_auc_score, confusion_matrix
    )

    positive_class = find_pathogenic_class(model.classes)
    results = predictor.predict(
        model,
        labelled_data,
        PredictionOptions(resolution_mode=resolution_mode, extra_features=extra_features)
    )

    scores = np.array([r.score for r in results])
    y_true = (labelled_data[model.label_column].astype(str) == positive_class).astype(int).to_numpy()
    y_pred = (scores >= threshold).astype(int)

    report = EvaluationReport(
        positive_class=positive_class,
        threshold=threshold,
        n_records=len(y_true),
        accuracy=float(accuracy_score(y_true, y_pred)),
        precision=float(precision_score(y_true, y_pred, zero_division=0)),
        recall=float(recall_score(y_true, y_pred, zero_division=0)),
        f1_score=float(f1_score(y_true, y_pred, zero_division=0)),
        roc_auc=float(roc_auc_score(y_true, scores)) if len(np.unique(y_true)) > 1 else None,
        confusion_matrix=confusion_matrix(y_true, y_pred, labels=[0, 1]).tolist()
    )
    logger.info(f"Hold-out accuracy {report.accuracy:.4f} on {report.n_records} records")
    return report
