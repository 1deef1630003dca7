from pathlib import Path
from typing import Optional

import typer

from .config import settings
from .core.results import AggregationConfig
from .services.io import evaluate_curve, score_screen

app = typer.Typer(
    help="Target-level robust rank aggregation and ROC/PRC evaluation for CRISPR screens"
)


@app.command()
def info() -> None:
    """Show basic environment info."""
    typer.echo(f"Environment: {settings.environment}")
    typer.echo(f"Permutations: {settings.permutations}")
    typer.echo(f"Seed: {settings.seed!r}")
    typer.echo(f"Workers: {settings.max_workers}")


@app.command()
def score(
    guide_stats: Path = typer.Argument(..., help="Per-guide statistics table"),
    annotation: Path = typer.Argument(..., help="Guide -> target annotation"),
    output: Path = typer.Option(..., "--output", "-o", help="Target summary TSV"),
    guide_output: Optional[Path] = typer.Option(None, help="Guide-level TSV"),
    permutations: int = typer.Option(settings.permutations),
    seed: Optional[int] = typer.Option(settings.seed),
    directions: str = typer.Option("both", help="enrich, deplete or both"),
    fdr_method: str = typer.Option("bh", help="bh or by"),
    control_label: Optional[str] = typer.Option(settings.control_label),
    workers: int = typer.Option(settings.max_workers),
) -> None:
    """Score every target of one contrast."""
    config = AggregationConfig(
        permutations=permutations,
        seed=seed,
        directions=directions,
        fdr_method=fdr_method,
        control_label=control_label,
        max_workers=workers,
    )
    results = score_screen(
        output_file=output,
        guide_stats_file=guide_stats,
        annotation_file=annotation,
        config=config,
        guide_output_file=guide_output,
    )
    for message in results.warnings:
        typer.echo(f"Warning: {message}", err=True)
    typer.echo(f"Wrote {len(results.targets)} targets to {output}")
    typer.echo(f"Seed: {results.config.seed}")


def _curve(kind, summary, targets, output, stat, expand, plot_dir):
    curve = evaluate_curve(
        kind=kind,
        output_file=output,
        summary_file=summary,
        target_list=targets,
        stat=stat,
        condense=not expand,
        plot_folder=plot_dir,
    )
    for message in curve.warnings:
        typer.echo(f"Warning: {message}", err=True)
    return curve


@app.command()
def roc(
    summary: Path = typer.Argument(..., help="Target summary TSV"),
    targets: Path = typer.Argument(..., help="Known positives, one per line"),
    output: Path = typer.Option(..., "--output", "-o"),
    stat: str = typer.Option("enrich.p"),
    expand: bool = typer.Option(False, help="One point per rank position"),
    plot_dir: Optional[Path] = typer.Option(None),
) -> None:
    """ROC curve of known positives."""
    curve = _curve("roc", summary, targets, output, stat, expand, plot_dir)
    typer.echo(f"AUC: {curve.statistic:.4f}")


@app.command()
def prc(
    summary: Path = typer.Argument(..., help="Target summary TSV"),
    targets: Path = typer.Argument(..., help="Known positives, one per line"),
    output: Path = typer.Option(..., "--output", "-o"),
    stat: str = typer.Option("enrich.p"),
    expand: bool = typer.Option(False, help="One point per rank position"),
    plot_dir: Optional[Path] = typer.Option(None),
) -> None:
    """Precision-recall curve of known positives."""
    curve = _curve("prc", summary, targets, output, stat, expand, plot_dir)
    typer.echo(f"Rank-sum p: {curve.statistic:.3g}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
