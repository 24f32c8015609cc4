"""Reading and writing tables, reference organism lists and model files."""

from contextlib import contextmanager
from typing import Dict, List, Optional, Tuple, Union, Iterator, IO
from pathlib import Path
import logging
import os

import pandas as pd

from ..exceptions import ConfigurationError, ExternalIOError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

EXCEL_SUFFIXES = {".xlsx", ".xls"}


def _table_suffix(path: Path) -> str:
    """Return the format suffix, ignoring a trailing compression suffix."""
    suffixes = [s.lower() for s in path.suffixes]
    if suffixes and suffixes[-1] in (".gz", ".bz2", ".zip", ".xz"):
        suffixes = suffixes[:-1]
    return suffixes[-1] if suffixes else ""


def _temp_sibling(path: Path) -> Path:
    return path.with_name(f".{path.name}.tmp")


def delimiter_for(path: PathLike) -> str:
    """Comma for ``.csv`` files, tab for everything else."""
    return "," if _table_suffix(Path(path)) == ".csv" else "\t"


def load_dataset(path: PathLike, sheet_name: Union[int, str] = 0) -> pd.DataFrame:
    """Load a labelled or unlabelled variant table.

    Args:
        path: CSV, TSV or Excel file with a header row.
        sheet_name: Sheet to read when ``path`` is an Excel workbook.

    Returns:
        DataFrame with one row per variant.
    """
    path = Path(path)
    if not path.exists():
        raise ExternalIOError(f"Dataset not found: {path}", path=path, operation="read")

    try:
        if _table_suffix(path) in EXCEL_SUFFIXES:
            df = pd.read_excel(path, sheet_name=sheet_name)
        else:
            df = pd.read_csv(path, sep=delimiter_for(path))
    except (OSError, ValueError, ImportError) as e:
        raise ExternalIOError(f"Could not read dataset {path}: {e}", path=path, operation="read") from e

    logger.info(f"Loaded {len(df)} rows x {len(df.columns)} columns from {path}")
    return df


def load_reference_list(path: PathLike, column: Optional[str] = None) -> List[str]:
    """Load an ordered list of organism identifiers.

    Plain ``.txt`` files hold one identifier per line (``#`` starts a comment).
    Any other file is read as a delimited table and ``column`` (or the first
    column) is used. Duplicates are dropped, first occurrence wins.
    """
    path = Path(path)
    try:
        if _table_suffix(path) == ".txt":
            with open(path) as f:
                values = [line.strip() for line in f]
            values = [v for v in values if v and not v.startswith("#")]
        else:
            table = pd.read_csv(path, sep=delimiter_for(path), dtype=str)
            if column is None:
                column = table.columns[0]
            elif column not in table.columns:
                raise ConfigurationError(
                    f"Reference list {path} has no column '{column}'",
                    details={"available": list(table.columns)}
                )
            values = [v.strip() for v in table[column].dropna()]
    except (OSError, ValueError) as e:
        raise ExternalIOError(
            f"Could not read reference list {path}: {e}", path=path, operation="read"
        ) from e

    return list(dict.fromkeys(v for v in values if v))


@contextmanager
def atomic_writer(path: PathLike, binary: bool = False) -> Iterator[IO]:
    """Open a temporary sibling of ``path`` and move it into place on success.

    Nothing is left at ``path`` if the body raises.
    """
    path = Path(path)
    tmp_path = _temp_sibling(path)
    created = False
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp_path, "wb" if binary else "w", newline=None if binary else "") as f:
            created = True
            yield f
        os.replace(tmp_path, path)
    except OSError as e:
        raise ExternalIOError(f"Could not write {path}: {e}", path=path, operation="write") from e
    finally:
        if created and tmp_path.exists():
            tmp_path.unlink()


def write_files_atomically(payloads: Dict[Path, bytes]) -> None:
    """Write several files so that either all of them are replaced or none is.

    Every payload goes to a temporary sibling first; the targets are only
    renamed into place once all temporary files are complete.
    """
    written: List[Path] = []
    current = None
    try:
        for path in payloads:
            current = path
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = _temp_sibling(path)
            with open(tmp_path, "wb") as f:
                written.append(tmp_path)
                f.write(payloads[path])
        for path in payloads:
            current = path
            os.replace(_temp_sibling(path), path)
    except OSError as e:
        raise ExternalIOError(f"Could not write {current}: {e}", path=current, operation="write") from e
    finally:
        for tmp_path in written:
            if tmp_path.exists():
                tmp_path.unlink()


def write_table(df: pd.DataFrame, path: PathLike) -> Path:
    """Write ``df`` as a delimited file with a header row."""
    path = Path(path)
    with atomic_writer(path) as f:
        df.to_csv(f, sep=delimiter_for(path), index=False)
    logger.info(f"Wrote {len(df)} rows to {path}")
    return path


def split_train_test(
    df: pd.DataFrame,
    label_column: str = "significance",
    test_fraction: float = 0.2,
    random_state: int = 42
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Split a labelled table into stratified training and hold-out parts."""
    from sklearn.model_selection import train_test_split

    if label_column not in df.columns:
        raise ConfigurationError(f"Label column '{label_column}' not found in dataset")
    if not 0.0 < test_fraction < 1.0:
        raise ConfigurationError(f"test_fraction must be in (0, 1), got {test_fraction}")

    train_df, test_df = train_test_split(
        df,
        test_size=test_fraction,
        random_state=random_state,
        stratify=df[label_column]
    )
    return train_df.reset_index(drop=True), test_df.reset_index(drop=True)
