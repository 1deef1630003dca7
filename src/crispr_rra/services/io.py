import matplotlib.pyplot as plt
import pandas as pd
from pathlib import Path
from typing import List, Optional, Union
from pandas import DataFrame

from crispr_rra.core.curves import CurveResult, prc_curve, roc_curve
from crispr_rra.core.plots import plot_prc, plot_roc
from crispr_rra.core.results import (
    AggregationConfig,
    ScreenResults,
    generate_results,
)


def save_figure(f, folder, name, bbox_inches="tight"):
    folder = Path(folder)
    folder.mkdir(exist_ok=True, parents=True)
    for suffix in [".png", ".svg", ".pdf"]:
        f.savefig(folder / (name + suffix), bbox_inches=bbox_inches)


def read_dataframe(path: Union[str, Path], **kwargs) -> DataFrame:
    """
    Read a tabular file into a pandas DataFrame based on file extension.

    Rules:
    - .csv        -> read as CSV
    - .tsv        -> read as TSV
    - .txt        -> treated as TSV
    - other       -> try TSV, raise error if that fails

    Additional keyword arguments are forwarded to the pandas reader.
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"File does not exist: {path}")

    suffix = path.suffix.lower()

    if suffix == ".csv":
        return pd.read_csv(path, **kwargs)

    if suffix in {".tsv", ".txt"}:
        return pd.read_csv(path, sep="\t", **kwargs)

    try:
        return pd.read_csv(path, sep="\t", **kwargs)
    except Exception as e:
        raise ValueError(
            f"Unsupported file extension '{suffix}' and failed to read as TSV."
        ) from e


def read_target_list(path: Union[str, Path], column: Optional[str] = None) -> List[str]:
    """
    Read known positive targets.

    Plain text files hold one ID per line; tables need ``column``.
    """
    path = Path(path)
    if column is None:
        if not path.exists():
            raise FileNotFoundError(f"File does not exist: {path}")
        with open(path) as handle:
            return [line.strip() for line in handle if line.strip()]
    df = read_dataframe(path)
    return df[column].dropna().astype(str).tolist()


def write_results(
    results: ScreenResults,
    output_file: Union[str, Path],
    guide_output_file: Optional[Union[str, Path]] = None,
) -> None:
    output_file = Path(output_file)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    results.targets.to_csv(output_file, sep="\t", index=False)
    if guide_output_file is not None:
        guide_output_file = Path(guide_output_file)
        guide_output_file.parent.mkdir(parents=True, exist_ok=True)
        results.guides.to_csv(guide_output_file, sep="\t", index=False)


def score_screen(
    output_file: Union[str, Path],
    guide_stats_file: Union[str, Path],
    annotation_file: Union[str, Path],
    config: Optional[AggregationConfig] = None,
    guide_output_file: Optional[Union[str, Path]] = None,
) -> ScreenResults:
    """Read the inputs, score every target and write the summary tables."""
    guide_stats = read_dataframe(guide_stats_file)
    annotation = read_dataframe(annotation_file)
    results = generate_results(guide_stats, annotation, config=config)
    write_results(results, output_file, guide_output_file)
    return results


def write_curve(
    curve: CurveResult,
    output_file: Union[str, Path],
) -> None:
    """Write curve coordinates and a one-row summary next to them."""
    output_file = Path(output_file)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    curve.to_frame().to_csv(output_file, sep="\t", index=False)

    summary = {
        "curve": curve.kind,
        "statistic": curve.ranking.value,
        "value": curve.statistic,
        "rank_sum_p": curve.rank_sum_p,
        "n_matched_targets": len(curve.matched_targets),
    }
    if curve.average_precision is not None:
        summary["average_precision"] = curve.average_precision
    for thr, p in curve.p_values.items():
        summary[f"hypergeom_p|p<={thr:g}"] = p
    for thr, p in curve.q_values.items():
        summary[f"hypergeom_p|q<={thr:g}"] = p
    pd.DataFrame([summary]).to_csv(
        output_file.with_name(output_file.stem + ".summary.tsv"),
        sep="\t",
        index=False,
    )


def evaluate_curve(
    kind: str,
    output_file: Union[str, Path],
    summary_file: Union[str, Path],
    target_list: Union[List[str], str, Path],
    stat: str = "enrich.p",
    condense: bool = True,
    plot_folder: Optional[Union[str, Path]] = None,
) -> CurveResult:
    """
    Compute a ROC ("roc") or precision-recall ("prc") curve from files.

    ``target_list`` is either a list of IDs or a file read with
    :func:`read_target_list`. With ``plot_folder`` set, the figure is saved
    as png/svg/pdf named after ``output_file``.
    """
    summary = read_dataframe(summary_file)
    if isinstance(target_list, (str, Path)):
        target_list = read_target_list(target_list)
    if kind == "roc":
        curve = roc_curve(summary, target_list, stat=stat, condense=condense)
        figure = plot_roc(curve) if plot_folder is not None else None
    elif kind == "prc":
        curve = prc_curve(summary, target_list, stat=stat, condense=condense)
        figure = plot_prc(curve) if plot_folder is not None else None
    else:
        raise ValueError(f"Unknown curve type {kind!r}, use 'roc' or 'prc'.")
    write_curve(curve, output_file)
    if figure is not None:
        save_figure(figure, Path(plot_folder), Path(output_file).stem)
        plt.close(figure)
    return curve
