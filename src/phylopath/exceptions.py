"""Exception hierarchy for the phylopath pipeline."""

from typing import Any, Dict, Optional


class PhylopathError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "PHYLOPATH_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(PhylopathError):
    """Raised when the pipeline cannot be configured for a dataset or model."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "CONFIGURATION_ERROR", details)


class DataShapeError(PhylopathError):
    """Raised when a table does not have the rows or columns a stage needs."""

    def __init__(
        self,
        message: str,
        columns: Optional[list] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        details = details or {}
        if columns:
            details["columns"] = list(columns)
        super().__init__(message, "DATA_SHAPE_ERROR", details)
        self.columns = list(columns) if columns else []


class ExternalIOError(PhylopathError):
    """Raised when reading or writing an external file fails."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        operation: Optional[str] = None
    ):
        details = {}
        if path:
            details["path"] = str(path)
        if operation:
            details["operation"] = operation
        super().__init__(message, "EXTERNAL_IO_ERROR", details)
        self.path = str(path) if path else None
