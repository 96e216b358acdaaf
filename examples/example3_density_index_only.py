"""
Example 3 – Density Index Without Ranking
==========================================
The density-index scan works on any gene ordering, e.g. one produced by
another ranking method.  This example compares a ranking by variance
with a random ordering of the same genes.
"""

import numpy as np

from stepwise_feature_select import density_index, select_optimal_feature_set

# ---------------------------------------------------------------------------
# Synthetic dataset: 30 structured genes + 170 noise genes
# ---------------------------------------------------------------------------
rng = np.random.default_rng(2)
n_cells = 150
groups = rng.integers(3, size=n_cells)

structured = rng.normal(0, 0.3, (30, n_cells)) + np.repeat(
    np.eye(3)[:, groups] * 2.0, 10, axis=0)
noise = rng.normal(0, 1.0, (170, n_cells))
expression = np.vstack([structured, noise])

print("Genes 0-29 = structured | 30-199 = noise\n")

# ---------------------------------------------------------------------------
# Score single gene sets directly
# ---------------------------------------------------------------------------
for name, rows in [("structured", slice(0, 30)), ("noise", slice(30, 60))]:
    value = density_index(expression[rows], k=10, num_pcs=10)
    print(f"  DI({name:<10}) = {value:.4f}")

# ---------------------------------------------------------------------------
# Scan two orderings
# ---------------------------------------------------------------------------
orderings = {
    "by variance": list(np.argsort(-expression.var(axis=1), kind="stable")),
    "random":      list(rng.permutation(len(expression))),
}
for name, ordered in orderings.items():
    genes, curve = select_optimal_feature_set(
        expression, ordered, elbow_point=10, k=10, num_pcs=10)
    print(f"\nOrdering {name}: optimal size = {len(genes)}")
    for n, value in curve.items():
        print(f"  {n:4d} genes  DI = {value:.4f}")
