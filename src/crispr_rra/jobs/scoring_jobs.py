"""
PyPipeGraph2 job wrappers for target scoring and curve evaluation.
"""

from pypipegraph2 import (
    Job,
    FileGeneratingJob,
    MultiFileGeneratingJob,
    FunctionInvariant,
    ParameterInvariant,
)
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional, Union
from crispr_rra.core.results import AggregationConfig, generate_results
from crispr_rra.services.io import evaluate_curve, score_screen


def generate_results_job(
    output_file: Union[Path, str],
    guide_stats_file: Union[Path, str],
    annotation_file: Union[Path, str],
    config: Optional[AggregationConfig] = None,
    guide_output_file: Optional[Union[Path, str]] = None,
    dependencies: List[Job] = [],
) -> Job:
    """
    Create PyPipeGraph job that scores all targets of one contrast.

    Parameters
    ----------
    output_file : Path or str
        Target summary TSV.
    guide_stats_file : Path or str
        Per-guide statistics (guide, t, df, log2fc).
    annotation_file : Path or str
        Guide -> target annotation.
    config : AggregationConfig, optional
        Aggregation settings. Set a seed to make the job reproducible.
    guide_output_file : Path or str, optional
        Also write the guide-level table.
    dependencies : List[Job]
        Job dependencies

    Returns
    -------
    Job
        FileGeneratingJob, or MultiFileGeneratingJob if the guide table is
        written as well.

    Examples
    --------
    >>> job = generate_results_job(
    ...     output_file="results/rra/sorted_vs_total.targets.tsv",
    ...     guide_stats_file="results/limma/sorted_vs_total.tsv",
    ...     annotation_file="incoming/brunello_annotation.tsv",
    ...     config=AggregationConfig(permutations=5000, seed=42),
    ... )
    """
    output_file = Path(output_file)
    config = config if config is not None else AggregationConfig()

    def __run(output_files):
        score_screen(
            output_file=output_file,
            guide_stats_file=guide_stats_file,
            annotation_file=annotation_file,
            config=config,
            guide_output_file=guide_output_file,
        )

    if guide_output_file is None:
        job = FileGeneratingJob(output_file, __run)
    else:
        job = MultiFileGeneratingJob(
            [output_file, Path(guide_output_file)], __run
        )
    job.depends_on(dependencies)

    job.depends_on(
        FunctionInvariant(generate_results),
        ParameterInvariant(
            str(output_file),
            (
                str(guide_stats_file),
                str(annotation_file),
                str(guide_output_file),
                tuple(sorted((k, str(v)) for k, v in asdict(config).items())),
            ),
        ),
    )
    return job


def _curve_job(
    kind: str,
    output_file: Union[Path, str],
    summary_file: Union[Path, str],
    target_list: Union[List[str], Path, str],
    stat: str,
    condense: bool,
    plot_folder: Optional[Union[Path, str]],
    dependencies: List[Job],
) -> Job:
    output_file = Path(output_file)
    output_files = [
        output_file,
        output_file.with_name(output_file.stem + ".summary.tsv"),
    ]
    if plot_folder is not None:
        output_files.extend(
            Path(plot_folder) / (output_file.stem + suffix)
            for suffix in [".png", ".svg", ".pdf"]
        )

    def __run(output_files):
        evaluate_curve(
            kind=kind,
            output_file=output_file,
            summary_file=summary_file,
            target_list=target_list,
            stat=stat,
            condense=condense,
            plot_folder=plot_folder,
        )

    job = MultiFileGeneratingJob(output_files, __run).depends_on(dependencies)
    targets_key = (
        str(target_list)
        if isinstance(target_list, (str, Path))
        else tuple(target_list)
    )
    job.depends_on(
        FunctionInvariant(evaluate_curve),
        ParameterInvariant(
            str(output_file),
            (kind, str(summary_file), targets_key, stat, condense),
        ),
    )
    return job


def roc_job(
    output_file: Union[Path, str],
    summary_file: Union[Path, str],
    target_list: Union[List[str], Path, str],
    stat: str = "enrich.p",
    condense: bool = True,
    plot_folder: Optional[Union[Path, str]] = None,
    dependencies: List[Job] = [],
) -> Job:
    """
    Create PyPipeGraph job writing a ROC curve against known positives.

    ``target_list`` is a list of target IDs or a file with one ID per line.
    Besides the curve, ``<output>.summary.tsv`` holds the AUC and the
    target-set enrichment p-values.
    """
    return _curve_job(
        "roc",
        output_file,
        summary_file,
        target_list,
        stat,
        condense,
        plot_folder,
        dependencies,
    )


def prc_job(
    output_file: Union[Path, str],
    summary_file: Union[Path, str],
    target_list: Union[List[str], Path, str],
    stat: str = "enrich.p",
    condense: bool = True,
    plot_folder: Optional[Union[Path, str]] = None,
    dependencies: List[Job] = [],
) -> Job:
    """Create PyPipeGraph job writing a precision-recall curve."""
    return _curve_job(
        "prc",
        output_file,
        summary_file,
        target_list,
        stat,
        condense,
        plot_folder,
        dependencies,
    )
