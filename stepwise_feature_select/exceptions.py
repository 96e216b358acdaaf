"""
stepwise_feature_select.exceptions
==================================
Errors raised by the ranking and density-index stages.

All of them derive from :class:`FeatureSelectionError`.  They signal
deterministic numerical failures caused by the input data, so callers
should fix the input rather than retry.  Each error keeps its context as
attributes and survives pickling, so it can be re-raised from joblib
worker processes.
"""

from __future__ import annotations


__all__ = [
    "FeatureSelectionError",
    "DegenerateScreeError",
    "FrontierExhaustedError",
    "InsufficientGenesError",
    "EmbeddingError",
]


class FeatureSelectionError(Exception):
    """Base class for all errors raised by this package."""


class DegenerateScreeError(FeatureSelectionError):
    """The scree curve has too few usable values to locate an elbow."""

    def __init__(self, n_values: int):
        self.n_values = n_values
        super().__init__(
            f"Elbow is undefined: only {n_values} non-zero scree value(s) "
            f"remain after filtering (at least 2 are required)."
        )

    def __reduce__(self):
        return (type(self), (self.n_values,))


class FrontierExhaustedError(FeatureSelectionError):
    """An included gene ran out of neighbours before every gene was placed.

    This only happens when the correlation matrix is incomplete.
    """

    def __init__(self, gene, n_placed: int, n_genes: int):
        self.gene = gene
        self.n_placed = n_placed
        self.n_genes = n_genes
        super().__init__(
            f"Adjacency list of gene {gene!r} is exhausted with "
            f"{n_placed}/{n_genes} genes placed; the correlation matrix "
            f"appears to be incomplete."
        )

    def __reduce__(self):
        return (type(self), (self.gene, self.n_placed, self.n_genes))


class InsufficientGenesError(FeatureSelectionError, ValueError):
    """A candidate gene set is too small to support a principal component."""

    def __init__(self, n_genes: int):
        self.n_genes = n_genes
        super().__init__(
            f"Candidate size {n_genes} cannot support even one principal "
            f"component (need at least 2 genes); choose a larger elbow_point."
        )

    def __reduce__(self):
        return (type(self), (self.n_genes,))


class EmbeddingError(FeatureSelectionError, RuntimeError):
    """PCA or nearest-neighbour search failed for a candidate gene set."""

    def __init__(self, n_genes: int, reason: str):
        self.n_genes = n_genes
        self.reason = reason
        super().__init__(
            f"Embedding failed for candidate size {n_genes}: {reason}"
        )

    def __reduce__(self):
        return (type(self), (self.n_genes, self.reason))
