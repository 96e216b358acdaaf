"""
stepwise_feature_select
=======================
A Python package for correlation-based stepwise feature selection on
single-cell gene-expression data.

The package implements the methodology proposed in:

    Ranjan, B., Sun, W., Park, J., et al. (2021).
    "DUBStepR is a scalable correlation-based feature selection method
    for accurately clustering single-cell data."
    Nature Communications 12, 5849.

Core idea
---------
**Stage 1 – ranking**
    The gene-gene correlation matrix is column-centred, and genes are
    regressed out one at a time, always picking the gene that explains
    most of the remaining residual.  The elbow of the resulting scree
    curve decides how many regression-ranked genes to keep.  The ranking
    is then extended to every gene by repeatedly appending the gene most
    correlated with any gene already included.

**Stage 2 – density-index selection**
    For prefixes of the ranking (starting at the elbow, in strides of 25
    genes) cells are embedded with PCA, and the density index::

        DI = mean(kNN distance) / sqrt(total PC variance)

    is computed.  The prefix with the smallest density index is the
    selected feature set.

The input is assumed to be filtered and log-normalised already.

Public API
----------
rank_and_extend              – stage 1, full gene ordering and elbow point
select_optimal_feature_set   – stage 2, optimal prefix and density curve
StepwiseFeatureSelector      – sklearn-compatible estimator for both stages
"""

from .exceptions import (
    DegenerateScreeError,
    EmbeddingError,
    FeatureSelectionError,
    FrontierExhaustedError,
    InsufficientGenesError,
)
from .ranking  import RankingResult, find_elbow, rank_and_extend
from .density  import density_index, select_optimal_feature_set
from .selector import StepwiseFeatureSelector

__all__ = [
    "StepwiseFeatureSelector",
    "rank_and_extend",
    "select_optimal_feature_set",
    "density_index",
    "find_elbow",
    "RankingResult",
    "FeatureSelectionError",
    "DegenerateScreeError",
    "FrontierExhaustedError",
    "InsufficientGenesError",
    "EmbeddingError",
]

__version__ = "0.1.0"
