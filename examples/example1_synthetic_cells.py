"""
Example 1 – Functional API on Synthetic Single-Cell Data
========================================================
Runs both stages step by step on a simulated expression matrix.

Dataset : 300 genes x 200 cells, 4 cell populations
          (60 marker genes, 240 noise genes), log-transformed
Stage 1 : stepwise regression + neighbour chaining
Stage 2 : density-index scan with k=10, 15 PCs
"""

import numpy as np

from stepwise_feature_select import rank_and_extend, select_optimal_feature_set
from stepwise_feature_select.plot import plot_density_index, plot_scree

# ---------------------------------------------------------------------------
# 1. Simulate data
# ---------------------------------------------------------------------------
rng = np.random.default_rng(0)
n_genes, n_cells, n_groups = 300, 200, 4

labels = rng.integers(n_groups, size=n_cells)
means = np.zeros((n_genes, n_groups))
for g in range(n_groups):
    means[g * 15:(g + 1) * 15, g] = 3.0          # 15 marker genes per group

counts = rng.poisson(np.exp(means[:, labels]))
expression = np.log1p(counts)
genes = [f"gene{i:03d}" for i in range(n_genes)]

print(f"Dataset: {n_genes} genes, {n_cells} cells, {n_groups} populations")

# ---------------------------------------------------------------------------
# 2. Stage 1: rank genes
# ---------------------------------------------------------------------------
correlation = np.corrcoef(expression)
(ordered, elbow), scree = rank_and_extend(
    correlation, expression, gene_names=genes, return_scree=True,
)

print(f"Elbow point: {elbow}")
print(f"Top 10 genes: {ordered[:10]}")

# ---------------------------------------------------------------------------
# 3. Stage 2: choose the optimal prefix
# ---------------------------------------------------------------------------
feature_genes, curve = select_optimal_feature_set(
    expression,
    ordered,
    elbow_point=max(elbow, 2),
    k=10,
    num_pcs=15,
    gene_names=genes,
    random_state=0,
)

print("\nDensity index by candidate size:")
for n, value in curve.items():
    print(f"  {n:4d} genes  DI = {value:.4f}")

n_markers = sum(int(g[4:]) < n_groups * 15 for g in feature_genes)
print(f"\nSelected {len(feature_genes)} genes "
      f"({n_markers} of them marker genes)")

# ---------------------------------------------------------------------------
# 4. Visualise
# ---------------------------------------------------------------------------
plot_scree(scree, elbow, save_path="example1_scree.png")
plot_density_index(curve, save_path="example1_density_index.png")
print("Plots saved: example1_scree.png, example1_density_index.png")
