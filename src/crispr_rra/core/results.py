"""
Target-level results for one contrast.

Combines directional guide p-values, robust rank aggregation and the
permutation null model into one summary table per target, plus a guide-level
table carrying the target-level columns for downstream filtering.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

import numpy as np
import pandas as pd

from ..config import settings
from .annotation import prepare_annotation, require_columns
from .directional import directional_pvalues
from .exceptions import EmptyResultError, InvalidInputError, ScreeningWarning
from .null_model import (
    CancellationToken,
    FdrMethod,
    NullModelEstimator,
    adjust_pvalues,
)
from .rra import aggregate_rho, percentile_ranks


class Direction(str, Enum):
    ENRICH = "enrich"
    DEPLETE = "deplete"
    BOTH = "both"

    @classmethod
    def parse(cls, value) -> "Direction":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise InvalidInputError(
                f"Unknown direction {value!r}, use one of "
                f"{[d.value for d in cls]}."
            ) from None

    def expand(self) -> Tuple[str, ...]:
        if self is Direction.BOTH:
            return ("enrich", "deplete")
        return (self.value,)


@dataclass
class AggregationConfig:
    """
    Settings for one aggregation run.

    Attributes
    ----------
    permutations : int
        Null samples per distinct guide count. Must be positive.
    seed : int or None
        Seed for the null model; identical seeds give identical results.
    directions : Direction or str
        "enrich", "deplete" or "both".
    fdr_method : FdrMethod or str
        "bh" (Benjamini-Hochberg) or "by" (Benjamini-Yekutieli).
    control_label : str or None
        Target label of non-targeting control guides.
    infer_controls : bool
        Look for a known control label when ``control_label`` is not set.
    batch_size, max_workers : int
        Work partitioning of the null model.
    guide_col, statistic_col, df_col, lfc_col : str
        Column names of the guide statistics table.
    ann_guide_col, ann_target_col : str
        Column names of the annotation table.
    ann_name_col : str or None
        Optional display-name column of the annotation.
    """

    permutations: int = field(default_factory=lambda: settings.permutations)
    seed: Optional[int] = field(default_factory=lambda: settings.seed)
    directions: Union[Direction, str] = Direction.BOTH
    fdr_method: Union[FdrMethod, str] = FdrMethod.BH
    control_label: Optional[str] = field(
        default_factory=lambda: settings.control_label
    )
    infer_controls: bool = True
    batch_size: int = field(default_factory=lambda: settings.batch_size)
    max_workers: int = field(default_factory=lambda: settings.max_workers)

    guide_col: str = "guide"
    statistic_col: str = "t"
    df_col: str = "df"
    lfc_col: str = "log2fc"
    ann_guide_col: str = "guide"
    ann_target_col: str = "target"
    ann_name_col: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.permutations, bool) or not isinstance(
            self.permutations, (int, np.integer)
        ):
            raise InvalidInputError(
                f"permutations must be an integer, got {self.permutations!r}."
            )
        if self.permutations <= 0:
            raise InvalidInputError(
                f"permutations must be positive, got {self.permutations}."
            )
        self.directions = Direction.parse(self.directions)
        self.fdr_method = FdrMethod.parse(self.fdr_method)


@dataclass
class ScreenResults:
    """Output of :func:`generate_results`.

    ``config.seed`` holds the seed the null model actually used, also when
    the run was started without one.
    """

    targets: pd.DataFrame
    guides: pd.DataFrame
    control_label: Optional[str]
    config: AggregationConfig
    warnings: List[str] = field(default_factory=list)
    null_distributions: Dict[int, np.ndarray] = field(default_factory=dict)


def _warn(messages: List[str], message: str) -> None:
    messages.append(message)
    warnings.warn(message, ScreeningWarning, stacklevel=3)


def _join_guides(
    guide_stats: pd.DataFrame,
    annotation: pd.DataFrame,
    cfg: AggregationConfig,
    messages: List[str],
) -> pd.DataFrame:
    """Guide stats joined to their targets, unmatched rows dropped with a warning."""
    stats_df = guide_stats[
        [cfg.guide_col, cfg.statistic_col, cfg.df_col, cfg.lfc_col]
    ].rename(
        columns={
            cfg.guide_col: "guide",
            cfg.statistic_col: "statistic",
            cfg.df_col: "df",
            cfg.lfc_col: "log2fc",
        }
    )
    stats_df["guide"] = stats_df["guide"].astype(str)
    if stats_df["guide"].duplicated().any():
        raise InvalidInputError("Guide statistics contain duplicated guide IDs.")

    unannotated = ~stats_df["guide"].isin(annotation.index)
    if unannotated.any():
        _warn(
            messages,
            f"{int(unannotated.sum())} of {len(stats_df)} guides have no "
            "annotation and were dropped.",
        )
    merged = stats_df.loc[~unannotated].join(annotation, on="guide")

    missing_targets = sorted(
        set(annotation["target"]) - set(merged["target"])
    )
    if missing_targets:
        shown = ", ".join(missing_targets[:10])
        more = "..." if len(missing_targets) > 10 else ""
        _warn(
            messages,
            f"{len(missing_targets)} annotated target(s) have no guide "
            f"statistics and were dropped: {shown}{more}",
        )
    return merged.reset_index(drop=True)


def generate_results(
    guide_stats: pd.DataFrame,
    annotation: pd.DataFrame,
    config: Optional[AggregationConfig] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> ScreenResults:
    """
    Score all targets of one contrast.

    Parameters
    ----------
    guide_stats : pd.DataFrame
        One row per guide with guide ID, two-sided statistic, degrees of
        freedom and log2 fold change (column names from ``config``).
    annotation : pd.DataFrame
        Guide ID -> target ID mapping, optionally with a display name.
    config : AggregationConfig, optional
        Run settings; defaults come from :mod:`crispr_rra.config`.
    cancel_token : CancellationToken, optional
        Cancels the whole run between permutation batches.

    Returns
    -------
    ScreenResults
        ``targets``: one row per non-control target with ``n_guides``,
        ``median_log2fc`` and ``rho_<dir>``, ``p_<dir>``, ``q_<dir>`` for
        each computed direction. ``guides``: one row per guide with guide-
        and target-level columns.

    Raises
    ------
    MissingColumnError
        Required input columns are absent.
    InvalidInputError
        Malformed statistics or settings.
    EmptyResultError
        Fewer than two targets remain after filtering.
    """
    cfg = config if config is not None else AggregationConfig()
    messages: List[str] = []

    require_columns(
        guide_stats,
        [cfg.guide_col, cfg.statistic_col, cfg.df_col, cfg.lfc_col],
        "Guide statistics",
    )
    ann, control_label = prepare_annotation(
        annotation,
        guide_col=cfg.ann_guide_col,
        target_col=cfg.ann_target_col,
        name_col=cfg.ann_name_col,
        control_label=cfg.control_label,
        infer_controls=cfg.infer_controls,
    )
    guides = _join_guides(guide_stats, ann, cfg, messages)

    is_control = (
        guides["target"] == control_label
        if control_label is not None
        else pd.Series(False, index=guides.index)
    )
    n_targets = guides.loc[~is_control, "target"].nunique()
    if n_targets < 2:
        raise EmptyResultError(
            f"Only {n_targets} target(s) remain after filtering, at least 2 "
            "are needed."
        )

    p_enrich, p_deplete = directional_pvalues(guides["statistic"], guides["df"])
    guide_p = {"enrich": p_enrich, "deplete": p_deplete}

    estimator = NullModelEstimator(
        library_size=len(guides),
        permutations=cfg.permutations,
        seed=cfg.seed,
        batch_size=cfg.batch_size,
        max_workers=cfg.max_workers,
        cancel_token=cancel_token,
    )

    targeting = guides.loc[~is_control]
    summary = pd.DataFrame(
        {
            "n_guides": targeting.groupby("target").size(),
            "median_log2fc": targeting.groupby("target")["log2fc"].median(),
        }
    )
    summary.index.name = "target"

    directions = cfg.directions.expand()
    for direction in directions:
        pvals = guide_p[direction]
        guides[f"p_{direction}"] = pvals
        guides[f"q_{direction}"] = adjust_pvalues(pvals, cfg.fdr_method)

        # background ranking includes control guides
        percentiles = pd.Series(percentile_ranks(pvals), index=guides.index)
        rho = aggregate_rho(
            percentiles[~is_control], guides.loc[~is_control, "target"]
        )
        target_p = estimator.empirical_pvalues(rho["rho"], rho["n_guides"])
        summary[f"rho_{direction}"] = rho["rho"]
        summary[f"p_{direction}"] = pd.Series(target_p, index=rho.index)
        summary[f"q_{direction}"] = pd.Series(
            adjust_pvalues(target_p, cfg.fdr_method), index=rho.index
        )

    if "target_name" in guides.columns:
        names = targeting.groupby("target")["target_name"].first()
        summary.insert(0, "target_name", names)
    summary = summary.reset_index()

    target_cols = ["target", "median_log2fc"] + [
        f"{kind}_{d}" for d in directions for kind in ("p", "q")
    ]
    guides = guides.merge(
        summary[target_cols],
        on="target",
        how="left",
        suffixes=("", "_target"),
    )
    guides = guides.rename(
        columns={"median_log2fc": "target_median_log2fc"}
    )
    for d in directions:
        guides = guides.rename(
            columns={
                f"p_{d}_target": f"target_p_{d}",
                f"q_{d}_target": f"target_q_{d}",
            }
        )

    return ScreenResults(
        targets=summary,
        guides=guides,
        control_label=control_label,
        config=replace(cfg, seed=estimator.seed),
        warnings=messages,
        null_distributions=dict(estimator.cache),
    )
