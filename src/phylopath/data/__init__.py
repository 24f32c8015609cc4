"""Dataset loading and feature column resolution."""

from .io import load_dataset, load_reference_list, split_train_test, write_table
from .schema import ColumnSelection, FeatureColumnSelector, ReferenceLists, ResolutionMode

__all__ = [
    "load_dataset",
    "load_reference_list",
    "split_train_test",
    "write_table",
    "ColumnSelection",
    "FeatureColumnSelector",
    "ReferenceLists",
    "ResolutionMode",
]
