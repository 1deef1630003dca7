from typing import Optional, Tuple

import matplotlib.pyplot as plt
from matplotlib.figure import Figure

from .curves import CurveResult


def plot_roc(
    roc: CurveResult,
    title: Optional[str] = None,
    figsize: Tuple[float, float] = (6, 6),
) -> Figure:
    """
    Draw a ROC curve as returned by :func:`crispr_rra.core.curves.roc_curve`.

    The dashed diagonal is the expectation for a random ranking.
    """
    n_total = float(roc.x.max()) if len(roc.x) else 1.0
    fig, ax = plt.subplots(figsize=figsize)
    ax.step(roc.x, roc.y, where="post", color="tab:blue", lw=3)
    ax.plot([0, n_total], [0, 1], ls="--", color="tab:red", lw=1)
    ax.set_xlim(0, n_total)
    ax.set_ylim(0, 1)
    ax.set_xlabel("Targets examined")
    ax.set_ylabel("Sensitivity")
    ax.set_title(title or f"{roc.ranking.value}  AUC: {roc.statistic:.3f}")
    fig.tight_layout()
    return fig


def plot_prc(
    prc: CurveResult,
    title: Optional[str] = None,
    figsize: Tuple[float, float] = (6, 6),
) -> Figure:
    """Draw a precision-recall curve."""
    fig, ax = plt.subplots(figsize=figsize)
    ax.plot(prc.x, prc.y, color="tab:blue", lw=3)
    ax.set_xlim(0, 1)
    ax.set_ylim(0, 1.02)
    ax.set_xlabel("Recall")
    ax.set_ylabel("Precision")
    ax.set_title(
        title
        or f"{prc.ranking.value}  ({len(prc.matched_targets)} targets)"
    )
    fig.tight_layout()
    return fig
