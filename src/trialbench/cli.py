"""Command-line interface for trialbench.

Subcommands:
    trialbench run       Execute a benchmark
    trialbench show      Display a saved benchmark
    trialbench compare   Compare units against a baseline
    trialbench export    Export results to CSV/markdown
    trialbench system    Print system characterization
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click
import yaml

from trialbench import __version__
from trialbench.bench.config import ORDERS, TIME_UNITS
from trialbench.bench.results import BenchResult, load_bench_run
from trialbench.logging import setup_logging


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """trialbench — Repeated-trial microbenchmarks with randomized trial order."""


def _load(result_dir: str) -> BenchResult:
    try:
        return load_bench_run(Path(result_dir))
    except FileNotFoundError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


@main.command()
@click.option(
    "--profile",
    "profile_path",
    type=click.Path(exists=True, path_type=Path),
    help="YAML profile defining the units and settings.",
)
@click.option(
    "--unit",
    "unit_refs",
    type=str,
    multiple=True,
    help="Unit as 'label=module:callable' (repeatable).",
)
@click.option(
    "--stmt",
    "stmts",
    type=str,
    multiple=True,
    help="Unit as 'label=python statement' (repeatable).",
)
@click.option("--setup", type=str, default="", help="Setup code for --stmt units.")
@click.option("--trials", type=int, default=None, help="Measured trials per unit (default: 100).")
@click.option("--warmup", type=int, default=None, help="Warm-up calls per unit (default: 2).")
@click.option(
    "--order",
    type=click.Choice(ORDERS),
    default=None,
    help="Trial order across units (default: random).",
)
@click.option(
    "--time-unit",
    type=click.Choice(TIME_UNITS),
    default=None,
    help="Unit for the report (default: by magnitude).",
)
@click.option("--seed", type=int, default=None, help="Seed for a reproducible trial order.")
@click.option(
    "--check",
    type=click.Choice(["equal"]),
    default=None,
    help="Verify that all units return equal values before timing.",
)
@click.option("--name", type=str, default=None, help="Human-readable benchmark name.")
@click.option(
    "--results-dir",
    type=click.Path(path_type=Path),
    default=None,
    help="Results output directory (default: results).",
)
@click.option("--no-save", is_flag=True, default=False, help="Do not write results to disk.")
@click.option("-v", "--verbose", is_flag=True, help="Show detailed output.")
@click.option("-q", "--quiet", is_flag=True, help="Only show warnings and errors.")
@click.option("--log-file", type=click.Path(path_type=Path), default=None)
def run(  # noqa: PLR0913
    profile_path: Path | None,
    unit_refs: tuple[str, ...],
    stmts: tuple[str, ...],
    setup: str,
    trials: int | None,
    warmup: int | None,
    order: str | None,
    time_unit: str | None,
    seed: int | None,
    check: str | None,
    name: str | None,
    results_dir: Path | None,
    no_save: bool,
    verbose: bool,
    quiet: bool,
    log_file: Path | None,
) -> None:
    """Benchmark units of work and print the summary table.

    Units come from a YAML profile, from --unit import references, or
    from --stmt statements; all three can be combined.

    \b
    Examples:
        # Two statements sharing setup code
        trialbench run --setup "import math; x = 2.0" \\
            --stmt "sqrt=math.sqrt(x)" --stmt "pow_half=x ** 0.5"

        # Import references, reproducible order
        trialbench run --unit "a=mypkg.impl:fast" --unit "b=mypkg.impl:slow" \\
            --trials 500 --seed 1

        # From a profile, overriding the trial count
        trialbench run --profile bench.yaml --trials 1000
    """
    from trialbench.bench.config import (
        BenchConfig,
        compile_statement,
        config_from_profile,
        load_profile,
        parse_inline_unit,
        resolve_unit,
    )
    from trialbench.bench.display import format_bench_show
    from trialbench.bench.runner import BenchRunner

    setup_logging(verbose=verbose, quiet=quiet, log_file=log_file)

    cli_overrides: dict[str, object] = {
        "name": name,
        "trials": trials,
        "warmup": warmup,
        "order": order,
        "time_unit": time_unit,
        "seed": seed,
        "check": check,
        "results_dir": str(results_dir) if results_dir else None,
    }

    try:
        if profile_path:
            config, units = config_from_profile(
                load_profile(profile_path),
                cli_overrides=cli_overrides,
            )
        else:
            config = BenchConfig(
                name=name or "",
                trials=trials if trials is not None else 100,
                warmup=warmup if warmup is not None else 2,
                order=order or "random",
                seed=seed,
                time_unit=time_unit,
                check=check,
            )
            if results_dir:
                config.results_dir = results_dir
            units = []

        for spec in unit_refs:
            label, ref = parse_inline_unit(spec)
            units.append(resolve_unit(label, ref))
        for spec in stmts:
            label, code = parse_inline_unit(spec)
            units.append(compile_statement(label, code, setup))
    except (ValueError, yaml.YAMLError) as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc

    config.cli_args = sys.argv[1:]

    runner = BenchRunner(config, units)
    try:
        result = runner.run(save=not no_save)
    except ValueError as exc:
        # ConfigurationError and CheckError.
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        click.echo("\nBenchmark interrupted.", err=True)
        raise SystemExit(130)  # noqa: B904

    click.echo()
    click.echo(format_bench_show(result))
    if not no_save:
        click.echo()
        click.echo(f"Results saved to: {config.output_dir}")


# ---------------------------------------------------------------------------
# show
# ---------------------------------------------------------------------------


@main.command("show")
@click.argument("result_dir", type=click.Path(exists=True, file_okay=False))
@click.option("--time-unit", type=click.Choice(TIME_UNITS), default=None)
def show(result_dir: str, time_unit: str | None) -> None:
    """Display results from a saved benchmark run.

    RESULT_DIR is the path to a benchmark output directory
    containing bench_meta.json and bench_results.jsonl.
    """
    from trialbench.bench.display import format_bench_show

    click.echo(format_bench_show(_load(result_dir), time_unit))


# ---------------------------------------------------------------------------
# compare
# ---------------------------------------------------------------------------


@main.command("compare")
@click.argument(
    "result_dirs",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, file_okay=False),
)
@click.option(
    "--baseline",
    type=str,
    default=None,
    help="Label of the baseline unit (default: first).",
)
@click.option("--seed", type=int, default=42, show_default=True, help="Bootstrap seed.")
def compare(result_dirs: tuple[str, ...], baseline: str | None, seed: int) -> None:
    """Compare units against a baseline unit.

    With one RESULT_DIR, compares the units of that run.  With several,
    units are merged and labelled 'run:unit' first.

    \b
    Examples:
        trialbench compare results/bench_20260301_101500 --baseline sqrt
        trialbench compare results/before results/after
    """
    from trialbench.bench.compare import compare_units, merge_results
    from trialbench.bench.display import format_comparison_report, format_report
    from trialbench.bench.results import EmptyDistributionError

    loaded = [_load(rd) for rd in result_dirs]
    try:
        result = merge_results(loaded)
        if len(result.runs) < 2:
            raise ValueError("Need at least two units to compare.")
        report = compare_units(result, baseline, ci_seed=seed)
    except (ValueError, EmptyDistributionError) as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc

    click.echo(result.title)
    click.echo()
    click.echo(format_report(result))
    click.echo()
    click.echo(format_comparison_report(report))


# ---------------------------------------------------------------------------
# export
# ---------------------------------------------------------------------------


@main.command("export")
@click.argument("result_dir", type=click.Path(exists=True, file_okay=False))
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["csv", "csv-summary", "markdown"]),
    default="csv",
    help="Export format.",
)
@click.option("--time-unit", type=click.Choice(TIME_UNITS), default=None)
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Output file (default: stdout).",
)
def export(result_dir: str, fmt: str, time_unit: str | None, output: Path | None) -> None:
    """Export benchmark results to CSV or Markdown.

    \b
    Examples:
        trialbench export results/bench_001 --format csv > trials.csv
        trialbench export results/bench_001 --format csv-summary --time-unit us
        trialbench export results/bench_001 --format markdown -o report.md
    """
    from trialbench.bench.export import export_csv, export_csv_summary, export_markdown

    result = _load(result_dir)

    if fmt == "csv":
        text = export_csv(result)
    elif fmt == "csv-summary":
        text = export_csv_summary(result, time_unit)
    else:
        text = export_markdown(result, time_unit)

    if output:
        output.write_text(text)
        click.echo(f"Exported to {output}")
    else:
        click.echo(text, nl=False)


# ---------------------------------------------------------------------------
# system
# ---------------------------------------------------------------------------


@main.command("system")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def system_cmd(as_json: bool) -> None:
    """Print system and clock characterization."""
    from trialbench.bench.system import capture_system_profile, format_system_profile
    from trialbench.bench.timing import clock_info

    profile = capture_system_profile()
    clock = clock_info()

    if as_json:
        data = profile.to_dict()
        data["clock"] = clock.to_dict()
        click.echo(json.dumps(data, indent=2))
    else:
        click.echo(format_system_profile(profile))
        click.echo(
            f"  Clock:   {clock.implementation} "
            f"(resolution {clock.resolution_ns:.0f} ns, read overhead {clock.overhead_ns} ns)"
        )
