"""
stepwise_feature_select.selector
================================
Scikit-learn compatible estimator running gene ranking followed by
density-index selection.

The estimator follows the standard sklearn API, with cells as samples
and genes as features:

    selector = StepwiseFeatureSelector(k=10, num_pcs=15)
    selector.fit(X_cells_by_genes)
    X_reduced = selector.transform(X_cells_by_genes)

A precomputed gene-gene correlation matrix can be passed to ``fit``;
otherwise the Pearson correlation of the genes in ``X`` is used.
"""

from __future__ import annotations

from typing import Any

import numpy as np
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.utils.validation import check_array, check_is_fitted

from .density import CANDIDATE_STEP, select_optimal_feature_set
from .ranking import N_STEPS, rank_and_extend


__all__ = ["StepwiseFeatureSelector"]


class StepwiseFeatureSelector(TransformerMixin, BaseEstimator):
    """Correlation-based stepwise feature selector for single-cell data.

    **Stage 1 – ranking**
        Genes are ranked by stepwise regression on the gene-gene
        correlation matrix, up to the elbow of the scree curve, and the
        ranking is extended to all genes by neighbour chaining.

    **Stage 2 – density-index selection**
        Prefixes of the ranking are embedded with PCA and scored by the
        length-scale normalised mean k-nearest-neighbour distance of the
        cells.  The prefix with the smallest density index is selected.

    Parameters
    ----------
    k : int, default=10
        Number of nearest neighbours in the density index.
    num_pcs : int, default=15
        Maximum number of principal components per candidate.
    error : float, default=0.0
        Approximation tolerance of the neighbour search (0 = exact).
    n_steps : int, default=100
        Number of stepwise regression steps.
    step : int, default=25
        Stride between candidate sizes in stage 2.
    elbow_point : int, optional
        Smallest candidate size in stage 2.  If ``None``, the elbow found
        in stage 1 is used.
    n_jobs : int, default=1
        Parallel jobs over candidate sizes.  Pass ``-1`` to use all cores.
    random_state : int, RandomState instance or None
        Seed for randomised PCA solvers.
    verbose : int, default=0
        Verbosity level (0 = silent, 1 = progress, 2 = density curve).

    Attributes
    ----------
    ordered_genes_ : list of int
        Column indices of all genes in ranking order.
    elbow_point_ : int
        Elbow of the scree curve found in stage 1.
    scree_ : np.ndarray
        Scree curve of the stepwise regression.
    density_index_ : dict of int -> float
        Density index per candidate size.
    selected_features_ : tuple of int
        Column indices of the selected genes, in ranking order.
    n_features_in_ : int
        Number of genes seen during fit.
    feature_names_in_ : np.ndarray of str
        Gene names, defined only when ``X`` has string column names.

    Examples
    --------
    >>> import numpy as np
    >>> from stepwise_feature_select import StepwiseFeatureSelector
    >>> rng = np.random.default_rng(0)
    >>> X = rng.normal(size=(80, 60))
    >>> selector = StepwiseFeatureSelector(k=5, num_pcs=5, elbow_point=10,
    ...                                    random_state=0)
    >>> selector.fit(X)
    StepwiseFeatureSelector(...)
    >>> X_reduced = selector.transform(X)
    """

    def __init__(
        self,
        k: int = 10,
        num_pcs: int = 15,
        error: float = 0.0,
        n_steps: int = N_STEPS,
        step: int = CANDIDATE_STEP,
        elbow_point: int | None = None,
        n_jobs: int = 1,
        random_state: Any = None,
        verbose: int = 0,
    ):
        self.k            = k
        self.num_pcs      = num_pcs
        self.error        = error
        self.n_steps      = n_steps
        self.step         = step
        self.elbow_point  = elbow_point
        self.n_jobs       = n_jobs
        self.random_state = random_state
        self.verbose      = verbose

    # ------------------------------------------------------------------
    # sklearn API
    # ------------------------------------------------------------------

    def fit(self, X, y=None, correlation=None) -> "StepwiseFeatureSelector":
        """Rank the genes of X and select the optimal feature set.

        Parameters
        ----------
        X : array-like, shape (n_cells, n_genes)
            Filtered, log-normalised expression data.
        y : ignored
        correlation : array-like, shape (n_genes, n_genes), optional
            Gene-gene correlation matrix in the column order of ``X``.
            Defaults to the Pearson correlation of the columns of ``X``.

        Returns
        -------
        self
        """
        columns = getattr(X, "columns", None)
        X_arr = check_array(X, dtype=np.float64)
        self.n_features_in_ = X_arr.shape[1]
        if columns is not None and all(isinstance(c, str) for c in columns):
            self.feature_names_in_ = np.asarray(columns, dtype=object)
        elif hasattr(self, "feature_names_in_"):
            # names from a previous fit do not describe this X
            del self.feature_names_in_

        if correlation is None:
            corr = np.corrcoef(X_arr, rowvar=False)
            if not np.isfinite(corr).all():
                raise ValueError(
                    "Correlation of X is undefined for constant genes; "
                    "filter them out or pass a correlation matrix."
                )
        else:
            corr = np.asarray(correlation, dtype=float)
        if corr.shape != (self.n_features_in_, self.n_features_in_):
            raise ValueError(
                f"correlation must have shape ({self.n_features_in_}, "
                f"{self.n_features_in_}), got {corr.shape}."
            )

        # ---- Stage 1: ranking ---------------------------------------------
        if self.verbose >= 1:
            print(f"[StepwiseFeatureSelector] Stage 1: ranking "
                  f"{self.n_features_in_} genes ...")

        expression = X_arr.T
        (ordered, elbow), scree = rank_and_extend(
            corr, expression, n_steps=self.n_steps, return_scree=True,
        )
        self.ordered_genes_ = ordered
        self.elbow_point_   = elbow
        self.scree_         = scree

        if self.verbose >= 1:
            print(f"[StepwiseFeatureSelector] Stage 1 done.  "
                  f"Elbow point = {self.elbow_point_}")

        # ---- Stage 2: density-index selection -----------------------------
        start = self.elbow_point if self.elbow_point is not None else self.elbow_point_
        if self.verbose >= 1:
            print(f"[StepwiseFeatureSelector] Stage 2: density index from "
                  f"{start} genes in steps of {self.step} ...")

        optimal, curve = select_optimal_feature_set(
            expression,
            self.ordered_genes_,
            elbow_point=start,
            k=self.k,
            num_pcs=self.num_pcs,
            error=self.error,
            step=self.step,
            n_jobs=self.n_jobs,
            random_state=self.random_state,
        )
        self.density_index_     = curve
        self.selected_features_ = tuple(optimal)

        if self.verbose >= 2:
            for n_genes, value in curve.items():
                print(f"  n_genes={n_genes:<6d} density index={value:.6f}")
        if self.verbose >= 1:
            print(f"[StepwiseFeatureSelector] Done.  "
                  f"Selected {len(self.selected_features_)} genes.")

        return self

    def transform(self, X) -> np.ndarray:
        """Keep only the selected genes of X.

        Parameters
        ----------
        X : array-like, shape (n_cells, n_genes)

        Returns
        -------
        X_reduced : np.ndarray, shape (n_cells, n_selected)
        """
        check_is_fitted(self, "selected_features_")
        X_arr = check_array(X, dtype=np.float64)
        if X_arr.shape[1] != self.n_features_in_:
            raise ValueError(
                f"X has {X_arr.shape[1]} genes, but the selector was fitted "
                f"with {self.n_features_in_}."
            )
        return X_arr[:, list(self.selected_features_)]

    def get_support(self, indices: bool = False):
        """Return a mask or indices of the selected genes.

        Parameters
        ----------
        indices : bool, default=False
            If ``True``, return indices; otherwise return a boolean mask.

        Returns
        -------
        mask : np.ndarray of bool, or np.ndarray of int
        """
        check_is_fitted(self, "selected_features_")
        mask = np.zeros(self.n_features_in_, dtype=bool)
        mask[list(self.selected_features_)] = True
        if indices:
            return np.where(mask)[0]
        return mask

    def get_feature_names_out(self, input_features=None):
        """Names of the selected genes, in ranking order.

        Parameters
        ----------
        input_features : array-like of str, optional
            Names of all genes.  If ``None``, uses ``feature_names_in_``
            when available, otherwise ``x0``, ``x1``, etc.

        Returns
        -------
        feature_names_out : np.ndarray of str
        """
        check_is_fitted(self, "selected_features_")
        if input_features is None:
            input_features = getattr(self, "feature_names_in_", None)
        if input_features is None:
            input_features = [f"x{i}" for i in range(self.n_features_in_)]
        return np.array(
            [input_features[i] for i in self.selected_features_], dtype=object
        )

    def summary(self) -> str:
        """Return a human-readable summary of the fitted selector."""
        check_is_fitted(self, "selected_features_")
        best_value = self.density_index_[len(self.selected_features_)]
        lines = [
            "StepwiseFeatureSelector – fit summary",
            f"  n_features_in          : {self.n_features_in_}",
            f"  regression steps       : {self.n_steps}",
            f"  elbow point            : {self.elbow_point_}",
            f"  candidate sizes        : {list(self.density_index_)}",
            f"  selected genes         : {len(self.selected_features_)}",
            f"  density index          : {best_value:.4f}",
        ]
        return "\n".join(lines)
