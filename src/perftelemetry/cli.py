"""Command-line interface for PerfTelemetry."""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import click
import yaml

from perftelemetry import __version__
from perftelemetry.metrics import MetricStore, SummaryAggregator, summary_to_dict
from perftelemetry.monitoring import render_chart
from perftelemetry.observation import PerformanceEntry
from perftelemetry.orchestration import TelemetryContext
from perftelemetry.reporting import import_metrics, load_export
from perftelemetry.utils.config_validator import (
    DEFAULT_CONFIG,
    load_config_file,
    validate_and_fix_config,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


def _offline_context(config_file: Optional[str] = None) -> TelemetryContext:
    """A context on a virtual clock, for replaying recorded data."""
    config: Dict[str, Any] = load_config_file(config_file) if config_file else {}
    config["clock"] = {**config.get("clock", {}), "realtime": False}
    return TelemetryContext(config)


def _aggregator_from_export(export_file: str) -> SummaryAggregator:
    store = MetricStore()
    for metric in import_metrics(load_export(export_file)):
        store.put(metric)
    return SummaryAggregator(store)


@click.group()
@click.version_option(version=__version__, prog_name="PerfTelemetry")
@click.option(
    "--log-level", "-l",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    default="WARNING",
    help="Logging level"
)
def cli(log_level: str):
    """PerfTelemetry: performance instrumentation, scoring and reporting."""
    logging.getLogger().setLevel(getattr(logging, log_level))


@cli.command()
@click.option(
    "--output", "-o", default="telemetry_config.yaml",
    help="Output file path"
)
@click.option(
    "--format", "-f", type=click.Choice(["yaml", "json"]), default="yaml",
    help="Configuration file format"
)
def generate_config(output: str, format: str):
    """Generate an example configuration file."""
    example_config = json.loads(json.dumps(DEFAULT_CONFIG))
    example_config["environment"] = "production"
    example_config["page"]["url"] = "https://certificates.example.com/dashboard"
    example_config["reporting"]["endpoint"] = "https://telemetry.example.com/api/performance"

    output_path = Path(output)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w") as f:
        if format == "yaml":
            yaml.dump(example_config, f, default_flow_style=False, sort_keys=False)
        else:
            json.dump(example_config, f, indent=2)

    click.echo(f"Generated example configuration at {output_path}")


@cli.command()
@click.argument("config_file", type=click.Path(exists=True))
def validate(config_file: str):
    """Validate a configuration file."""
    click.echo(f"Validating configuration: {config_file}")

    try:
        is_valid, errors, _ = validate_and_fix_config(config_file)
    except Exception as e:
        click.echo(click.style(f"Error validating configuration: {e}", fg="red"))
        sys.exit(1)

    if is_valid:
        click.echo(click.style("✓ Configuration is valid", fg="green"))
    else:
        click.echo(click.style(f"✗ Configuration has {len(errors)} errors:", fg="red"))
        for i, error in enumerate(errors[:20], 1):
            click.echo(f"  {i}. {error}")
        if len(errors) > 20:
            click.echo(f"  ... and {len(errors) - 20} more errors")

    sys.exit(0 if is_valid else 1)


@cli.command()
@click.argument("entries_file", type=click.Path(exists=True))
@click.option("--config", "-c", "config_file", type=click.Path(exists=True), help="Telemetry configuration")
@click.option("--json-output", is_flag=True, help="Print the full report as JSON")
def replay(entries_file: str, config_file: Optional[str], json_output: bool):
    """Replay recorded platform timing entries and score the page."""
    try:
        with open(entries_file) as f:
            raw_entries = json.load(f)
        ctx = _offline_context(config_file)
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    skipped = 0
    for raw in raw_entries:
        try:
            ctx.adapter.ingest(PerformanceEntry.from_dict(raw))
        except (ValueError, TypeError) as e:
            skipped += 1
            logging.getLogger(__name__).warning(f"Skipping malformed entry: {e}")

    if json_output:
        click.echo(json.dumps(ctx.report_generator.generate_report().to_dict(), indent=2))
        return

    vitals = ctx.vitals.get_web_vitals().to_dict()
    click.echo(f"Replayed {len(raw_entries) - skipped} entries ({skipped} skipped)")
    click.echo("Web vitals:")
    for name, value in vitals.items():
        click.echo(f"  {name}: {value:.3f}" if name == "CLS" else f"  {name}: {value:.0f}ms")
    click.echo(f"Score: {ctx.score_engine.get_performance_score()} ({ctx.score_engine.get_performance_grade()})")
    for recommendation in ctx.score_engine.get_recommendations():
        click.echo(f"  - {recommendation}")


@cli.command()
@click.argument("export_file", type=click.Path(exists=True))
@click.option("--threshold", "-t", type=float, default=1000, help="Slow metric threshold (ms)")
def summarize(export_file: str, threshold: float):
    """Summarize an exported metrics document."""
    try:
        aggregator = _aggregator_from_export(export_file)
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    summary = summary_to_dict(aggregator.get_summary())
    click.echo(f"Total metrics: {summary['total']}")
    for section in ("components", "images", "bundles"):
        stats = summary[section]
        click.echo(f"{section}: {stats['count']} (avg {stats['averageLoadTime']:.1f}ms)")

    slow = aggregator.get_slow_metrics(threshold)
    click.echo(f"\nMetrics slower than {threshold:.0f}ms: {len(slow)}")
    if slow:
        df = aggregator.get_metrics_df()
        df = df[df["duration"] > threshold].sort_values("duration", ascending=False)
        click.echo(df[["name", "type", "duration"]].to_string(index=False))


@cli.command()
@click.argument("export_file", type=click.Path(exists=True))
@click.option("--output", "-o", default="performance-dashboard.png", help="Output image path")
@click.option("--top", type=int, default=10, help="Number of slowest metrics to chart")
def plot(export_file: str, output: str, top: int):
    """Render a dashboard chart from an exported metrics document."""
    try:
        aggregator = _aggregator_from_export(export_file)
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    summary = aggregator.get_summary()
    averages = {s: summary[s]["averageLoadTime"] for s in ("components", "images", "bundles")}
    path = render_chart(averages, aggregator.get_metrics_df(), output, top_n=top)
    click.echo(f"Chart written to {path}")


@cli.command()
@click.argument("export_file", type=click.Path(exists=True))
@click.option("--endpoint", "-e", required=True, help="Reporting endpoint URL")
def send(export_file: str, endpoint: str):
    """Post a report built from an exported metrics document."""
    try:
        ctx = _offline_context()
        for metric in import_metrics(load_export(export_file)):
            ctx.store.put(metric)
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if asyncio.run(ctx.transport.send_report(endpoint)):
        click.echo(click.style("✓ Report sent", fg="green"))
    else:
        click.echo(click.style("✗ Report could not be delivered", fg="red"))
        sys.exit(1)


if __name__ == "__main__":
    cli()
