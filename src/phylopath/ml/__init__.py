"""Machine learning modules for pathogenicity prediction."""

from .classifier import ClassifierTrainer, HyperparameterCandidateResult
from .tuning import HyperparameterTuner, TuningResult
from .training import ModelArtifact, ModelTrainer, save_artifact, load_artifact
from .predictor import Predictor, PredictionOptions, PredictionResult
from .evaluation import EvaluationReport, evaluate

__all__ = [
    "ClassifierTrainer",
    "HyperparameterCandidateResult",
    "HyperparameterTuner",
    "TuningResult",
    "ModelArtifact",
    "ModelTrainer",
    "save_artifact",
    "load_artifact",
    "Predictor",
    "PredictionOptions",
    "PredictionResult",
    "EvaluationReport",
    "evaluate",
]
