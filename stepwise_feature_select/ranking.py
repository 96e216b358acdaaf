"""
stepwise_feature_select.ranking
===============================
Ranking of genes by stepwise regression on the gene-gene correlation
matrix, followed by neighbour chaining over the remaining genes.

Stepwise regression
-------------------
The correlation matrix is column-centred once.  At every step the gene
whose column explains the most of the current residual is selected::

    G         = R^T R                    (Gram matrix of the residual R)
    varExp[i] = ||G[i, :]||_2 / sqrt(|G[i, i]|)

and regressed out of every column::

    R <- R - R[:, s] G[s, :] / G[s, s]

The selected scores form the scree curve whose elbow decides how many of
the regression-ranked genes are kept.

Neighbour chaining
------------------
Starting from the kept genes, the gene with the highest correlation to
any already included gene is appended, one at a time, until every gene
has been placed.
"""

from __future__ import annotations

import logging
from typing import Any, NamedTuple, Sequence

import numpy as np
import pandas as pd

from ._validation import as_correlation_matrix
from .exceptions import DegenerateScreeError, FrontierExhaustedError


__all__ = [
    "N_STEPS",
    "ELBOW_WINDOW",
    "RankingResult",
    "gram_norms",
    "regression_step",
    "stepwise_regression",
    "find_elbow",
    "extend_by_correlation",
    "rank_and_extend",
]

logger = logging.getLogger(__name__)

#: Number of regression steps, independent of the number of genes.
N_STEPS = 100

#: Number of leading non-zero scree values passed to the elbow locator.
ELBOW_WINDOW = 100


class RankingResult(NamedTuple):
    """Output of :func:`rank_and_extend`; unpacks as ``(ordered, elbow)``."""

    ordered_genes: list
    elbow_point: int


# ---------------------------------------------------------------------------
# Stepwise regression
# ---------------------------------------------------------------------------

def gram_norms(residual: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Gram matrix of ``residual`` and the two per-gene norms derived from it.

    Returns
    -------
    gram : np.ndarray, shape (n_genes, n_genes)
        ``residual.T @ residual``.
    gc_norm : np.ndarray, shape (n_genes,)
        Euclidean norm of each row of ``gram``.
    g_norm : np.ndarray, shape (n_genes,)
        ``sqrt(|diag(gram)|)``, the norm of each residual column.
    """
    gram = residual.T @ residual
    gc_norm = np.linalg.norm(gram, axis=1)
    g_norm = np.sqrt(np.abs(np.diag(gram)))
    return gram, gc_norm, g_norm


def regression_step(residual: np.ndarray) -> tuple[np.ndarray, int | None, float]:
    """Run one regression step on the centred residual matrix.

    Genes whose residual column is zero have an undefined score and are
    never selected.  When no gene has a defined score the residual is
    exhausted: it is returned unchanged with ``selected = None`` and a
    scree value of 0.

    Returns
    -------
    new_residual : np.ndarray
    selected : int or None
        Column index of the gene that was regressed out.
    scree_value : float
        Variance-explained score of the selected gene.
    """
    gram, gc_norm, g_norm = gram_norms(residual)
    with np.errstate(divide="ignore", invalid="ignore"):
        var_exp = gc_norm / g_norm
    var_exp[~np.isfinite(var_exp)] = np.nan

    if np.isnan(var_exp).all():
        return residual, None, 0.0

    # nanargmax returns the first maximum, i.e. a stable descending sort
    selected = int(np.nanargmax(var_exp))
    regressor = residual[:, selected]
    explained = np.outer(regressor, gram[selected]) / gram[selected, selected]
    return residual - explained, selected, float(var_exp[selected])


def stepwise_regression(
    correlation: np.ndarray,
    n_steps: int = N_STEPS,
) -> tuple[list[int], np.ndarray]:
    """Order genes by stepwise regression on a gene-gene correlation matrix.

    Parameters
    ----------
    correlation : np.ndarray, shape (n_genes, n_genes)
        Symmetric correlation matrix.
    n_steps : int, default=100
        Number of regression steps.

    Returns
    -------
    selected : list of int
        Indices of the regressed genes in selection order, without
        duplicates.
    scree : np.ndarray, shape (n_steps + 1,)
        ``scree[0]`` is the Frobenius norm of the centred matrix and
        ``scree[t]`` the score of the gene selected at step ``t``.
        Steps taken after the residual is exhausted are 0.
    """
    residual = correlation - correlation.mean(axis=0)

    scree = np.zeros(n_steps + 1)
    scree[0] = np.linalg.norm(residual)
    selected: list[int] = []
    seen: set[int] = set()
    n_increases = 0

    for step in range(1, n_steps + 1):
        residual, gene, value = regression_step(residual)
        if gene is None:
            logger.warning(
                "Residual exhausted at step %d of %d; remaining scree "
                "values are 0.", step, n_steps,
            )
            break

        scree[step] = value
        if step > 1 and value > scree[step - 1]:
            n_increases += 1
        if gene not in seen:
            seen.add(gene)
            selected.append(gene)
        logger.debug("Step %d: regressed gene %d (score %.6g)", step, gene, value)

    if n_increases:
        logger.warning(
            "Scree curve increased at %d step(s); the correlation matrix "
            "may be numerically degenerate.", n_increases,
        )
    return selected, scree


def find_elbow(values: Sequence[float]) -> int:
    """Locate the elbow of a curve.

    The elbow is the point farthest from the straight line joining the
    first and the last finite point.  Non-finite values are ignored but
    keep their place, so the returned position indexes ``values``.

    Parameters
    ----------
    values : sequence of float

    Returns
    -------
    int
        1-based position of the elbow in ``values`` (first occurrence on
        ties).

    Raises
    ------
    DegenerateScreeError
        If fewer than 2 finite values are available.

    Examples
    --------
    >>> find_elbow([10.0, 2.0, 1.5, 1.0, 0.5])
    2
    """
    y = np.asarray(values, dtype=float)
    finite = np.isfinite(y)
    n = int(finite.sum())
    if n < 2:
        raise DegenerateScreeError(n)

    x = np.flatnonzero(finite) + 1.0
    y = y[finite]
    dx = x[-1] - x[0]
    dy = y[-1] - y[0]
    distance = np.abs(dy * (x - x[0]) - dx * (y - y[0])) / np.hypot(dx, dy)
    return int(x[np.argmax(distance)])


# ---------------------------------------------------------------------------
# Neighbour chaining
# ---------------------------------------------------------------------------

def extend_by_correlation(
    correlation: np.ndarray,
    core: Sequence[int],
) -> list[int]:
    """Extend ``core`` to an ordering of all genes by neighbour chaining.

    Each included gene proposes its most correlated gene that is not yet
    included; the proposal with the largest correlation is appended (ties
    go to the gene included earliest).  Non-finite correlations are
    treated as missing edges.

    Parameters
    ----------
    correlation : np.ndarray, shape (n_genes, n_genes)
    core : sequence of int
        Indices of the initially included genes, in order.

    Returns
    -------
    list of int
        ``core`` followed by the remaining gene indices in chaining order.

    Raises
    ------
    FrontierExhaustedError
        If an included gene has no neighbour left while genes remain
        unplaced (missing correlations).
    """
    corr = np.asarray(correlation, dtype=float)
    n_genes = corr.shape[0]
    order = list(core)
    if not order and n_genes:
        raise ValueError("core must contain at least one gene.")

    weights = np.where(np.isfinite(corr), corr, -np.inf)
    adjacency = np.argsort(-weights, axis=1, kind="stable")
    placed = np.zeros(n_genes, dtype=bool)
    placed[order] = True
    cursor = np.zeros(n_genes, dtype=np.intp)

    # frontier[i] is the best remaining neighbour of order[i]
    frontier_gene = np.full(n_genes, -1, dtype=np.intp)
    frontier_corr = np.full(n_genes, -np.inf)

    def refresh(slot: int) -> None:
        owner = order[slot]
        row = adjacency[owner]
        c = cursor[owner]
        while c < n_genes and placed[row[c]] and np.isfinite(weights[owner, row[c]]):
            c += 1
        cursor[owner] = c
        if c == n_genes or not np.isfinite(weights[owner, row[c]]):
            raise FrontierExhaustedError(owner, len(order), n_genes)
        frontier_gene[slot] = row[c]
        frontier_corr[slot] = weights[owner, row[c]]

    if len(order) < n_genes:
        for slot in range(len(order)):
            refresh(slot)

    while len(order) < n_genes:
        n_included = len(order)
        best = int(np.argmax(frontier_corr[:n_included]))
        gene = int(frontier_gene[best])
        order.append(gene)
        placed[gene] = True

        if len(order) == n_genes:
            break
        for slot in np.flatnonzero(frontier_gene[:n_included] == gene):
            refresh(int(slot))
        refresh(n_included)

    return order


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def rank_and_extend(
    correlation: Any,
    expression: Any = None,
    *,
    gene_names: Sequence | None = None,
    n_steps: int = N_STEPS,
    return_scree: bool = False,
):
    """Rank all genes: stepwise regression up to the elbow, then chaining.

    Parameters
    ----------
    correlation : array-like or DataFrame, shape (n_genes, n_genes)
        Gene-gene correlation matrix.  A DataFrame's index supplies the
        gene identifiers.
    expression : array-like or DataFrame, shape (n_genes, n_cells), optional
        Log-normalised expression matrix.  Only used to check that its
        gene axis matches ``correlation``.
    gene_names : sequence, optional
        Gene identifiers for an array ``correlation``.  Defaults to the
        row positions.
    n_steps : int, default=100
        Number of regression steps.
    return_scree : bool, default=False
        Also return the unfiltered scree curve of the regression.

    Returns
    -------
    RankingResult
        ``(ordered_genes, elbow_point)``: a permutation of all genes and
        the number of regression-ranked genes at its head.
    scree : np.ndarray, shape (n_steps + 1,)
        Only returned when ``return_scree`` is True.

    Examples
    --------
    >>> import numpy as np
    >>> from stepwise_feature_select import rank_and_extend
    >>> rng = np.random.default_rng(0)
    >>> expr = rng.normal(size=(40, 60))
    >>> ordered, elbow = rank_and_extend(np.corrcoef(expr))
    >>> sorted(ordered) == list(range(40))
    True
    """
    corr, genes = as_correlation_matrix(correlation, gene_names)
    if n_steps < 1:
        raise ValueError("n_steps must be >= 1.")

    if expression is not None:
        expr_genes = (list(expression.index)
                      if isinstance(expression, pd.DataFrame) else genes)
        if np.shape(expression)[0] != len(genes) or set(expr_genes) != set(genes):
            raise ValueError(
                "expression and correlation must describe the same genes."
            )

    regressed, scree = stepwise_regression(corr, n_steps=n_steps)

    retained = scree[scree != 0][:ELBOW_WINDOW]
    elbow = find_elbow(np.log(retained))
    if elbow > len(regressed):
        logger.warning(
            "Elbow at %d exceeds the %d distinct regressed genes; clamping.",
            elbow, len(regressed),
        )
        elbow = len(regressed)
    logger.info("Elbow point: %d of %d regression steps", elbow, n_steps)

    order = extend_by_correlation(corr, regressed[:elbow])
    logger.info("Neighbour chaining placed %d genes", len(order) - elbow)
    result = RankingResult(
        ordered_genes=[genes[i] for i in order],
        elbow_point=elbow,
    )
    if return_scree:
        return result, scree
    return result
