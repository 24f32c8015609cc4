"""Feature column resolution against reference organism lists."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple, Union
from pathlib import Path
import logging

import pandas as pd

from ..exceptions import ConfigurationError, DataShapeError
from .io import load_reference_list

logger = logging.getLogger(__name__)

LABEL_COLUMN = "significance"

ColumnRef = Union[str, int]


class ResolutionMode(Enum):
    """Naming convention used for organism feature columns."""
    SHORT_CODE = "short_code"
    LONG_NAME = "long_name"

    @classmethod
    def parse(cls, value: Union[str, "ResolutionMode"]) -> "ResolutionMode":
        """Accept an enum member or its (case-insensitive) value or name."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        for mode in cls:
            if key in (mode.value, mode.name.lower()):
                return mode
        raise ConfigurationError(
            f"Invalid resolution mode: {value!r}. Use 'short_code' or 'long_name'.",
            details={"allowed": [m.value for m in cls]}
        )


@dataclass(frozen=True)
class ReferenceLists:
    """Locations of the organism reference lists, one per naming convention."""

    short_code_path: Optional[Path] = None
    long_name_path: Optional[Path] = None
    short_code_column: Optional[str] = None
    long_name_column: Optional[str] = None

    @classmethod
    def from_config(cls, config: Dict) -> "ReferenceLists":
        """Build from the ``reference`` section of the pipeline config."""
        short = config.get("short_codes")
        long = config.get("long_names")
        return cls(
            short_code_path=Path(short) if short else None,
            long_name_path=Path(long) if long else None,
            short_code_column=config.get("short_code_column"),
            long_name_column=config.get("long_name_column")
        )

    def load(self, mode: ResolutionMode) -> List[str]:
        """Load the organism identifiers for ``mode``."""
        if mode is ResolutionMode.SHORT_CODE:
            path, column = self.short_code_path, self.short_code_column
        else:
            path, column = self.long_name_path, self.long_name_column

        if path is None:
            raise ConfigurationError(f"No reference list configured for mode '{mode.value}'")
        return load_reference_list(path, column)


@dataclass(frozen=True)
class ColumnSelection:
    """Resolved label and feature columns of one dataset schema."""

    label_column: Optional[str]
    label_index: Optional[int]
    feature_names: Tuple[str, ...]
    feature_indices: Tuple[int, ...]
    resolution_mode: ResolutionMode

    @property
    def n_features(self) -> int:
        """Number of predictor columns."""
        return len(self.feature_names)

    def features(self, df: pd.DataFrame, order: Optional[Sequence[str]] = None) -> pd.DataFrame:
        """Return the feature block of ``df`` labelled by feature name.

        Args:
            df: Table with the schema this selection was resolved on.
            order: Feature names to return, in this order (default: selection order).
        """
        if order is None:
            order = self.feature_names
        index_by_name = dict(zip(self.feature_names, self.feature_indices))
        block = df.iloc[:, [index_by_name[name] for name in order]]
        return block.set_axis(list(order), axis=1)

    def labels(self, df: pd.DataFrame) -> pd.Series:
        """Return the label column of ``df``; every record must be labelled."""
        if self.label_index is None:
            raise ConfigurationError("Selection has no label column")
        labels = df.iloc[:, self.label_index]
        n_missing = int(labels.isna().sum())
        if n_missing:
            raise DataShapeError(
                f"{n_missing} of {len(labels)} records have no '{self.label_column}' value",
                columns=[self.label_column]
            )
        return labels.astype(str)


class FeatureColumnSelector:
    """Resolve which columns of a dataset are organism features."""

    def __init__(self, reference_lists: ReferenceLists, label_column: str = LABEL_COLUMN):
        """Initialize selector.

        Args:
            reference_lists: Reference list locations for both naming modes.
            label_column: Exact name of the class label column.
        """
        self.reference_lists = reference_lists
        self.label_column = label_column

    def select_columns(
        self,
        dataset: Union[pd.DataFrame, Sequence[str]],
        resolution_mode: Union[str, ResolutionMode],
        extra_features: Optional[Sequence[ColumnRef]] = None,
        require_label: bool = True
    ) -> ColumnSelection:
        """Resolve label and feature columns for a dataset.

        Args:
            dataset: DataFrame or its list of column names.
            resolution_mode: Which reference list to intersect against.
            extra_features: Column names or positions always treated as features.
            require_label: Fail when the label column is absent.

        Returns:
            ColumnSelection with features in dataset column order, extras appended.
        """
        mode = ResolutionMode.parse(resolution_mode)
        columns = [str(c) for c in (dataset.columns if isinstance(dataset, pd.DataFrame) else dataset)]

        label_index = columns.index(self.label_column) if self.label_column in columns else None
        if label_index is None and require_label:
            raise ConfigurationError(
                f"Label column '{self.label_column}' not found in dataset",
                details={"columns": columns[:20]}
            )

        reference = set(self.reference_lists.load(mode))
        indices = [
            i for i, name in enumerate(columns)
            if name in reference and i != label_index
        ]

        for ref in extra_features or []:
            idx = self._resolve_extra(ref, columns)
            if idx == label_index:
                raise ConfigurationError(f"Label column '{self.label_column}' cannot be a feature")
            if idx not in indices:
                indices.append(idx)

        if not indices:
            raise ConfigurationError(
                f"No feature columns found using {mode.value} reference list",
                details={"resolution_mode": mode.value}
            )

        logger.debug(f"Resolved {len(indices)} feature columns ({mode.value})")

        return ColumnSelection(
            label_column=self.label_column if label_index is not None else None,
            label_index=label_index,
            feature_names=tuple(columns[i] for i in indices),
            feature_indices=tuple(indices),
            resolution_mode=mode
        )

    @staticmethod
    def _resolve_extra(ref: ColumnRef, columns: List[str]) -> int:
        """Map an extra feature name or position to a column index."""
        if isinstance(ref, int) and not isinstance(ref, bool):
            if not 0 <= ref < len(columns):
                raise ConfigurationError(f"Extra feature position {ref} out of range")
            return ref
        if ref not in columns:
            raise ConfigurationError(f"Extra feature column '{ref}' not found in dataset")
        return columns.index(ref)
