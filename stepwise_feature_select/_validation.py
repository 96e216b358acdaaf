"""Input coercion shared by the ranking and density-index stages."""

from __future__ import annotations

from typing import Any, Sequence

import numpy as np
import pandas as pd
from sklearn.utils.validation import check_array


def as_gene_matrix(
    data: Any,
    gene_names: Sequence | None = None,
    name: str = "data",
) -> tuple[np.ndarray, list]:
    """Return ``(values, genes)`` for a matrix whose rows are genes.

    A DataFrame's index supplies the gene identifiers unless ``gene_names``
    is given.  For plain arrays without ``gene_names`` the identifiers are
    the row positions.  NaN and infinite entries are rejected.
    """
    if isinstance(data, pd.DataFrame):
        values = data.to_numpy(dtype=float)
        genes = list(data.index) if gene_names is None else list(gene_names)
    else:
        values = np.asarray(data, dtype=float)
        genes = (list(range(values.shape[0])) if gene_names is None
                 else list(gene_names))

    values = check_array(values, dtype=np.float64, input_name=name)

    if len(genes) != values.shape[0]:
        raise ValueError(
            f"{name} has {values.shape[0]} gene rows but {len(genes)} gene "
            f"names were supplied."
        )
    if len(set(genes)) != len(genes):
        raise ValueError(f"{name} has duplicate gene identifiers.")
    return values, genes


def as_correlation_matrix(
    data: Any,
    gene_names: Sequence | None = None,
) -> tuple[np.ndarray, list]:
    """Like :func:`as_gene_matrix`, additionally requiring a symmetric
    square matrix whose two axes carry the same genes."""
    if isinstance(data, pd.DataFrame) and list(data.columns) != list(data.index):
        raise ValueError(
            "correlation must have identical row and column gene labels."
        )

    values, genes = as_gene_matrix(data, gene_names, name="correlation")
    n_rows, n_cols = values.shape
    if n_rows != n_cols:
        raise ValueError(
            f"correlation must be square, got shape ({n_rows}, {n_cols})."
        )
    if not np.allclose(values, values.T):
        raise ValueError("correlation must be symmetric.")
    return values, genes
