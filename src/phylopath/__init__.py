"""Pathogenicity classification from cross-species conservation features."""

from .exceptions import PhylopathError, ConfigurationError, DataShapeError, ExternalIOError

__version__ = "0.1.0"

__all__ = [
    "PhylopathError",
    "ConfigurationError",
    "DataShapeError",
    "ExternalIOError",
]
