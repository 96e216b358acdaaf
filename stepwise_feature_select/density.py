"""
stepwise_feature_select.density
===============================
Selection of the optimal prefix of a gene ordering by the density index.

For a candidate set made of the first ``n`` ranked genes, cells are
embedded into ``min(num_pcs, n - 1)`` principal components and the
density index is computed as::

    DI(n) = mean(kNN distances) / sqrt(sum(component variances))

Self-distances are excluded from the mean.  Dividing by the length scale
makes candidates with different amounts of captured variance comparable.
Candidate sizes run from the elbow point in strides of 25 genes, and the
size with the smallest density index wins.

Computational notes
-------------------
* PCA uses scikit-learn (centred, unscaled).  Component variances are
  unbiased, so ``sqrt(explained_variance_)`` matches R's ``prcomp`` sdev.
* Neighbour search uses SciPy's kd-tree; ``error > 0`` enables
  ``(1 + error)``-approximate search.
* Candidate sizes are independent and can be evaluated in parallel with
  joblib.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

import numpy as np
from joblib import Parallel, delayed
from scipy.spatial import cKDTree
from sklearn.decomposition import PCA

from ._validation import as_gene_matrix
from .exceptions import EmbeddingError, InsufficientGenesError


__all__ = [
    "CANDIDATE_STEP",
    "candidate_sizes",
    "density_index",
    "select_optimal_feature_set",
]

logger = logging.getLogger(__name__)

#: Stride between consecutive candidate sizes.
CANDIDATE_STEP = 25


def candidate_sizes(
    n_genes: int,
    elbow_point: int,
    step: int = CANDIDATE_STEP,
) -> list[int]:
    """Candidate prefix lengths ``elbow_point, elbow_point + step, ...``
    not exceeding ``n_genes``.

    >>> candidate_sizes(50, 10)
    [10, 35]
    """
    return list(range(elbow_point, n_genes + 1, step))


def density_index(
    expression: np.ndarray,
    k: int = 10,
    num_pcs: int = 15,
    error: float = 0.0,
    *,
    random_state: Any = None,
    svd_solver: str = "auto",
) -> float:
    """Density index of the cells described by a set of genes.

    Parameters
    ----------
    expression : np.ndarray, shape (n_genes, n_cells)
        Expression of the candidate genes.
    k : int, default=10
        Number of nearest neighbours per cell.
    num_pcs : int, default=15
        Maximum number of principal components.
    error : float, default=0.0
        Approximation tolerance of the neighbour search.
    random_state : int, RandomState instance or None
        Forwarded to :class:`sklearn.decomposition.PCA`.
    svd_solver : str, default="auto"
        Forwarded to :class:`sklearn.decomposition.PCA`.

    Returns
    -------
    float
        Mean kNN distance divided by the PCA length scale.

    Raises
    ------
    InsufficientGenesError
        If fewer than 2 genes are given.
    EmbeddingError
        If PCA or the neighbour search fails, or yields unusable output.
    """
    n_genes = expression.shape[0]
    n_components = min(num_pcs, n_genes - 1)
    if n_components < 1:
        raise InsufficientGenesError(n_genes)

    cells = expression.T
    try:
        pca = PCA(
            n_components=n_components,
            svd_solver=svd_solver,
            random_state=random_state,
        )
        scores = pca.fit_transform(cells)
        distances, _ = cKDTree(scores).query(scores, k=k + 1, eps=error)
    except (ValueError, ArithmeticError, np.linalg.LinAlgError) as exc:
        raise EmbeddingError(n_genes, str(exc)) from exc

    # first column holds each cell's zero distance to itself
    distances = distances[:, 1:]
    if not np.isfinite(distances).all():
        raise EmbeddingError(
            n_genes,
            f"fewer than {k + 1} cells available for {k}-nearest-neighbour "
            f"search ({cells.shape[0]} cells).",
        )

    length_scale = np.sqrt(np.sum(pca.explained_variance_))
    if not np.isfinite(length_scale) or length_scale == 0:
        raise EmbeddingError(n_genes, "principal components carry no variance.")

    return float(distances.mean() / length_scale)


def select_optimal_feature_set(
    expression: Any,
    ordered_genes: Sequence,
    elbow_point: int = 25,
    k: int = 10,
    num_pcs: int = 15,
    error: float = 0.0,
    *,
    gene_names: Sequence | None = None,
    step: int = CANDIDATE_STEP,
    n_jobs: int = 1,
    random_state: Any = None,
    svd_solver: str = "auto",
) -> tuple[list, dict[int, float]]:
    """Choose the prefix of ``ordered_genes`` with the smallest density index.

    Parameters
    ----------
    expression : array-like or DataFrame, shape (n_genes, n_cells)
        Log-normalised expression matrix.  A DataFrame's index supplies the
        gene identifiers.
    ordered_genes : sequence
        Gene identifiers in ranking order, e.g. from
        :func:`~stepwise_feature_select.rank_and_extend`.
    elbow_point : int, default=25
        Smallest candidate size.
    k : int, default=10
        Number of nearest neighbours per cell.
    num_pcs : int, default=15
        Maximum number of principal components.
    error : float, default=0.0
        Approximation tolerance of the neighbour search (0 = exact).
    gene_names : sequence, optional
        Gene identifiers for an array ``expression``.  Defaults to the row
        positions.
    step : int, default=25
        Stride between candidate sizes.
    n_jobs : int, default=1
        Parallel jobs over candidate sizes.  Pass ``-1`` to use all cores.
    random_state : int, RandomState instance or None
        Seed for randomised PCA solvers.
    svd_solver : str, default="auto"
        PCA solver.

    Returns
    -------
    optimal_feature_genes : list
        First ``n*`` genes of ``ordered_genes``, where ``n*`` minimises the
        density index (first occurrence on ties).
    density_index : dict of int -> float
        Density index per candidate size, in increasing size order.

    Examples
    --------
    >>> import numpy as np
    >>> from stepwise_feature_select import select_optimal_feature_set
    >>> rng = np.random.default_rng(0)
    >>> expr = rng.normal(size=(50, 30))
    >>> genes, curve = select_optimal_feature_set(
    ...     expr, list(range(50)), elbow_point=10, k=3, num_pcs=5)
    >>> list(curve)
    [10, 35]
    """
    values, genes = as_gene_matrix(expression, gene_names, name="expression")
    ordered = list(ordered_genes)

    if len(set(ordered)) != len(ordered):
        raise ValueError("ordered_genes contains duplicate genes.")
    row_of = {gene: i for i, gene in enumerate(genes)}
    missing = [gene for gene in ordered if gene not in row_of]
    if missing:
        raise KeyError(
            f"{len(missing)} ordered gene(s) not found in expression, "
            f"e.g. {missing[:5]!r}"
        )
    _validate_params(len(ordered), elbow_point, k, num_pcs, error, step)

    sizes = candidate_sizes(len(ordered), elbow_point, step)
    if sizes[0] < 2:
        raise InsufficientGenesError(sizes[0])
    rows = np.array([row_of[gene] for gene in ordered], dtype=np.intp)

    logger.info(
        "Scanning %d candidate sizes from %d to %d genes",
        len(sizes), sizes[0], sizes[-1],
    )
    scores = Parallel(n_jobs=n_jobs)(
        delayed(density_index)(
            values[rows[:n]], k, num_pcs, error,
            random_state=random_state, svd_solver=svd_solver,
        )
        for n in sizes
    )

    curve = {n: float(score) for n, score in zip(sizes, scores)}
    for n, score in curve.items():
        logger.debug("Density index at %d genes: %.6g", n, score)

    best = sizes[int(np.argmin(scores))]
    logger.info("Optimal feature set: %d genes", best)
    return ordered[:best], curve


def _validate_params(n_genes, elbow_point, k, num_pcs, error, step):
    if elbow_point < 1:
        raise ValueError("elbow_point must be >= 1.")
    if elbow_point > n_genes:
        raise ValueError(
            f"elbow_point ({elbow_point}) must not exceed the number of "
            f"ordered genes ({n_genes})."
        )
    if k < 1:
        raise ValueError("k must be >= 1.")
    if num_pcs < 1:
        raise ValueError("num_pcs must be >= 1.")
    if error < 0:
        raise ValueError("error must be >= 0.")
    if step < 1:
        raise ValueError("step must be >= 1.")
