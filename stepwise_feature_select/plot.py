"""
stepwise_feature_select.plot
============================
Diagnostic plots for the scree curve and the density-index curve.
"""

from __future__ import annotations

from typing import Mapping, Optional, Sequence

import numpy as np
import matplotlib.pyplot as plt


__all__ = ["plot_scree", "plot_density_index"]


def plot_scree(
    scree: Sequence[float],
    elbow_point: int | None = None,
    *,
    log: bool = True,
    title: str = "Stepwise regression scree curve",
    ax: Optional[plt.Axes] = None,
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Line plot of the scree curve with its elbow marked.

    Zero entries are dropped first, as they are before elbow detection,
    so positions on the x-axis match the elbow point.

    Parameters
    ----------
    scree : sequence of float
        Scree curve, e.g. from ``rank_and_extend(..., return_scree=True)``.
    elbow_point : int, optional
        1-based elbow position to mark with a vertical line.
    log : bool, default=True
        Plot the natural logarithm of the scree values.
    title : str
    ax : matplotlib Axes, optional
    save_path : str, optional

    Returns
    -------
    matplotlib.figure.Figure
    """
    values = np.asarray(scree, dtype=float)
    values = values[values != 0]
    y = np.log(values) if log else values
    x = np.arange(1, len(y) + 1)

    if ax is None:
        fig, ax = plt.subplots(figsize=(7, 4.5))
    else:
        fig = ax.get_figure()

    ax.plot(x, y, marker="o", markersize=3, color="#4C72B0", linewidth=1.2)
    if elbow_point is not None:
        ax.axvline(elbow_point, color="#C44E52", linestyle="--",
                   label=f"Elbow = {elbow_point}")
        ax.legend(fontsize=9)

    ax.set_xlabel("Position in scree curve", fontsize=12)
    ax.set_ylabel("Log variance explained" if log else "Variance explained",
                  fontsize=12)
    ax.set_title(title, fontsize=13)

    fig.tight_layout()
    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches="tight")
    return fig


def plot_density_index(
    density_index: Mapping[int, float],
    *,
    highlight_min: bool = True,
    title: str = "Density index by number of genes",
    ax: Optional[plt.Axes] = None,
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Density index against candidate size.

    Parameters
    ----------
    density_index : mapping of int -> float
        Output of :func:`~stepwise_feature_select.select_optimal_feature_set`.
    highlight_min : bool, default=True
        Mark the minimum (the selected feature set size) in red.
    title : str
    ax : matplotlib Axes, optional
    save_path : str, optional

    Returns
    -------
    matplotlib.figure.Figure
    """
    sizes  = np.array(list(density_index.keys()))
    values = np.array(list(density_index.values()), dtype=float)

    if ax is None:
        fig, ax = plt.subplots(figsize=(7, 4.5))
    else:
        fig = ax.get_figure()

    ax.plot(sizes, values, marker="o", color="#4C72B0", linewidth=1.2)
    if highlight_min and len(values):
        best = int(np.argmin(values))
        ax.scatter([sizes[best]], [values[best]], color="#C44E52", s=60,
                   zorder=3, label=f"Optimal: {sizes[best]} genes")
        ax.legend(fontsize=9)

    ax.set_xlabel("Number of genes", fontsize=12)
    ax.set_ylabel("Density index", fontsize=12)
    ax.set_title(title, fontsize=13)

    fig.tight_layout()
    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches="tight")
    return fig
