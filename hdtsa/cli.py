"""
cli.py - Rich Command Line Interface for hdtsa

Usage:
    hdtsa --help
    hdtsa factors data.csv --lag-k 5 --output factors.npz
    hdtsa segment data.csv --permutation fdr --beta 1e-10
    hdtsa segment data.csv --permutation max --seed 7 --output seg.npz
    hdtsa generate segments --seed 42 --output data.csv
    hdtsa info seg.npz
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional
from enum import Enum

import numpy as np
import typer
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box

# Initialize Typer app and Rich console
app = typer.Typer(
    name="hdtsa",
    help="Inference for high-dimensional vector time series: factors and segmentation",
    add_completion=False,
    rich_markup_mode="rich",
)
console = Console()


# =============================================================================
# ENUMS FOR CLI OPTIONS
# =============================================================================

class Permutation(str, Enum):
    """Grouping procedures."""
    max = "max"
    fdr = "fdr"


class DatasetKind(str, Enum):
    """Synthetic dataset designs."""
    factors = "factors"
    segments = "segments"


class OutputFormat(str, Enum):
    """Output file formats."""
    npz = "npz"
    json = "json"


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def load_series(path: Path) -> np.ndarray:
    """Load an (n, p) series from a CSV file with one header row."""
    if not path.exists():
        console.print(f"[red]Error:[/red] File not found: {path}")
        raise typer.Exit(1)

    try:
        Y = np.loadtxt(path, delimiter=",", skiprows=1, ndmin=2)
    except ValueError as e:
        console.print(f"[red]Error:[/red] Could not parse {path}: {e}")
        raise typer.Exit(1)
    return Y


def _result_format(fmt: OutputFormat):
    from hdtsa import ResultFormat
    return ResultFormat(fmt.value)


def print_factor_summary(result, title: str = "Factor Estimation"):
    """Print a rich summary of a FactorResult."""
    table = Table(title=title, box=box.ROUNDED, show_header=False, title_style="bold cyan")
    table.add_column("Property", style="dim")
    table.add_column("Value", style="bold")

    table.add_row("Variables (p)", str(result.p))
    table.add_row("Observations (n)", str(result.X.shape[0]))
    table.add_row("Lags (K)", str(result.lag_k))
    table.add_row("Method", result.method)
    table.add_row("Factors (r)", str(result.factor_num))

    top = result.eigenvalues[:6]
    table.add_row("Leading eigenvalues", ", ".join(f"{v:.3g}" for v in top) + ("..." if len(result.eigenvalues) > 6 else ""))

    console.print(table)


def print_groups(result, title: str = "Segmentation"):
    """Print the groups of a TSPCAResult."""
    summary = Table.grid(padding=(0, 2))
    summary.add_column(style="dim")
    summary.add_column(style="bold green")
    summary.add_row("Method", result.method)
    summary.add_row("Components (p)", str(result.p))
    summary.add_row("Groups", str(result.no_groups))
    console.print(Panel(summary, title=title, border_style="green"))

    groups_table = Table(title="Groups", box=box.SIMPLE)
    groups_table.add_column("Group", style="cyan")
    groups_table.add_column("Size", justify="right")
    groups_table.add_column("Components", justify="left")

    for g, members in enumerate(result.groups, start=1):
        groups_table.add_row(str(g), str(len(members)), ", ".join(str(i) for i in members))

    console.print(groups_table)


# =============================================================================
# COMMANDS
# =============================================================================

@app.command()
def factors(
    input_file: Path = typer.Argument(..., help="CSV file with the series (rows=time, cols=variables)"),
    lag_k: int = typer.Option(5, "--lag-k", "-k", help="Number of lags K"),
    thresh: bool = typer.Option(False, "--thresh", help="Threshold the autocovariances"),
    delta: Optional[float] = typer.Option(None, "--delta", help="Threshold level (default 2*sqrt(log(p)/n))"),
    two_step: bool = typer.Option(False, "--two-step", help="Use the two-step estimator"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Save the result"),
    format: OutputFormat = typer.Option(OutputFormat.npz, "--format", "-f", help="Output format"),
):
    """
    Estimate the number of factors and the factor loadings.

    Example:
        hdtsa factors data.csv --lag-k 2
        hdtsa factors data.csv --two-step --output factors.npz
    """
    from hdtsa import factors as estimate_factors, save_result, HDTSAError

    Y = load_series(input_file)
    console.print(f"  Loaded series: [cyan]{Y.shape[0]}[/cyan] observations × [cyan]{Y.shape[1]}[/cyan] variables")

    try:
        with console.status("[bold blue]Estimating factors..."):
            result = estimate_factors(Y, lag_k=lag_k, thresh=thresh, delta=delta, twostep=two_step)
    except HDTSAError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1)

    print_factor_summary(result)

    if output:
        save_result(result, output, _result_format(format))
        console.print(f"\n  Saved to: [bold]{output}[/bold]")


@app.command()
def segment(
    input_file: Path = typer.Argument(..., help="CSV file with the series (rows=time, cols=variables)"),
    lag_k: int = typer.Option(5, "--lag-k", "-k", help="Number of lags K"),
    opt: int = typer.Option(1, "--opt", help="1: sample covariance, 2: CLIME precision matrix"),
    permutation: Permutation = typer.Option(Permutation.max, "--permutation", "-p", help="Grouping procedure"),
    beta: Optional[float] = typer.Option(None, "--beta", help="FDR level (required for fdr)"),
    m: Optional[int] = typer.Option(None, "--m", help="Largest cross-correlation lag (default 10)"),
    permutations: int = typer.Option(100, "--permutations", help="Permutation draws for max"),
    seed: Optional[int] = typer.Option(None, "--seed", "-s", help="Random seed for reproducibility"),
    prewhiten: bool = typer.Option(True, "--prewhiten/--no-prewhiten", help="AR-prewhiten components"),
    thresh: bool = typer.Option(False, "--thresh", help="Threshold the autocovariances"),
    delta: Optional[float] = typer.Option(None, "--delta", help="Threshold level"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Save the result"),
    format: OutputFormat = typer.Option(OutputFormat.npz, "--format", "-f", help="Output format"),
):
    """
    Segment a vector time series into uncorrelated groups of components.

    Example:
        hdtsa segment data.csv --permutation fdr --beta 1e-10
        hdtsa segment data.csv --permutation max --seed 7
    """
    from hdtsa import pca_ts, save_result, HDTSAError

    Y = load_series(input_file)
    console.print(f"  Loaded series: [cyan]{Y.shape[0]}[/cyan] observations × [cyan]{Y.shape[1]}[/cyan] variables")

    try:
        with console.status("[bold blue]Segmenting..."):
            result = pca_ts(
                Y,
                lag_k=lag_k,
                opt=opt,
                permutation=permutation.value,
                thresh=thresh,
                delta=delta,
                prewhiten=prewhiten,
                m=m,
                beta=beta,
                n_permutations=permutations,
                rng=seed,
            )
    except HDTSAError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1)

    print_groups(result)

    if output:
        save_result(result, output, _result_format(format))
        console.print(f"\n  Saved to: [bold]{output}[/bold]")


@app.command()
def generate(
    kind: DatasetKind = typer.Argument(..., help="Dataset design"),
    n: Optional[int] = typer.Option(None, "--n", "-n", help="Number of observations"),
    p: int = typer.Option(200, "--p", help="Number of variables (factors design only)"),
    seed: Optional[int] = typer.Option(None, "--seed", "-s", help="Random seed"),
    output: Path = typer.Option(Path("series.csv"), "--output", "-o", help="Output CSV file"),
):
    """
    Generate a synthetic series with known structure.

    Example:
        hdtsa generate factors --n 400 --p 200 --seed 1
        hdtsa generate segments --seed 42 --output data.csv
    """
    from hdtsa import simulate_factor_series, simulate_segmented_series

    rng = np.random.default_rng(seed)

    if kind == DatasetKind.factors:
        Y, _, _ = simulate_factor_series(n=n or 400, p=p, rng=rng)
        note = f"{Y.shape[1]} variables driven by 3 AR(1) factors"
    else:
        Y, _, _ = simulate_segmented_series(n=n or 1500, rng=rng)
        note = "6 components in groups of sizes 3, 2, 1"

    np.savetxt(output, Y, delimiter=",", header=",".join(f"y{i}" for i in range(Y.shape[1])), comments="")
    console.print(f"  [green]✓[/green] Generated {Y.shape[0]} × {Y.shape[1]} series ({note})")
    console.print(f"  Saved to: [bold]{output}[/bold]")


@app.command()
def info(
    result_file: Path = typer.Argument(..., help="Result file (.npz or .json)"),
):
    """
    Display a saved result.

    Example:
        hdtsa info seg.npz
    """
    from hdtsa import load_result, FactorResult

    try:
        result = load_result(result_file)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    console.print(f"  File: [bold]{result_file}[/bold]\n")
    if isinstance(result, FactorResult):
        print_factor_summary(result)
    else:
        print_groups(result)


@app.command()
def version():
    """Show version information."""
    from hdtsa import __version__

    console.print(Panel(
        f"[bold cyan]hdtsa[/bold cyan] v{__version__}\n\n"
        "Factor modelling and segmentation of\n"
        "high-dimensional vector time series.",
        border_style="cyan"
    ))


# =============================================================================
# ENTRY POINT
# =============================================================================

def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
