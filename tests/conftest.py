"""Shared fixtures: synthetic conservation tables and reference organism lists."""

import pytest
import numpy as np
import pandas as pd

from phylopath.data.schema import FeatureColumnSelector, ReferenceLists
from phylopath.ml.classifier import ClassifierTrainer


SHORT_CODES = ["panTro6", "gorGor6", "mm39", "rn7", "bosTau9", "canFam6"]
LONG_NAMES = [
    "Pan troglodytes", "Gorilla gorilla", "Mus musculus",
    "Rattus norvegicus", "Bos taurus", "Canis familiaris",
]


def build_dataset(
    n_rows=40,
    features=("panTro6", "mm39", "rn7"),
    labels=("Pathogenic", "Benign"),
    seed=0
):
    """Create a labelled table where pathogenic records are more conserved."""
    rng = np.random.default_rng(seed)
    half = n_rows // 2
    y = np.array([labels[0]] * half + [labels[1]] * (n_rows - half))
    is_positive = y == labels[0]

    data = {
        "coordinate": [f"chr1:{100000 + 17 * i}" for i in range(n_rows)],
        "AlleleID": np.arange(n_rows) + 5000,
        "GeneSymbol": [f"GENE{i % 4}" for i in range(n_rows)],
        "Chromosome": ["1"] * n_rows,
        "hg38": rng.normal(0.5, 0.1, n_rows),
    }
    for name in features:
        data[name] = np.where(
            is_positive,
            rng.normal(0.8, 0.1, n_rows),
            rng.normal(0.3, 0.1, n_rows)
        )
    data["significance"] = y
    return pd.DataFrame(data)


@pytest.fixture
def make_dataset():
    """Factory for synthetic labelled tables."""
    return build_dataset


@pytest.fixture
def reference_lists(tmp_path):
    """Short codes as a text file, long names as a TSV table."""
    short_path = tmp_path / "organisms_short.txt"
    short_path.write_text("# UCSC assembly codes\n" + "\n".join(SHORT_CODES) + "\n")

    long_path = tmp_path / "organisms_long.tsv"
    pd.DataFrame({"code": SHORT_CODES, "organism": LONG_NAMES}).to_csv(
        long_path, sep="\t", index=False
    )

    return ReferenceLists(
        short_code_path=short_path,
        long_name_path=long_path,
        long_name_column="organism"
    )


@pytest.fixture
def selector(reference_lists):
    """Selector over the test reference lists."""
    return FeatureColumnSelector(reference_lists)


@pytest.fixture
def fast_trainer():
    """Small forest and few CV repeats to keep tests quick."""
    return ClassifierTrainer(n_folds=5, n_repeats=2, random_state=7, n_jobs=1, n_estimators=25)
