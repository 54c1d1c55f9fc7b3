import click
from rich.table import Table
from rich.panel import Panel

from costlens.analysis.anomalies import AnomalyDetector
from costlens.analysis.normalizer import normalize
from costlens.core.exceptions import CostLensError

from ..output import money, read_input

SEVERITY_COLORS = {"high": "red", "medium": "yellow", "low": "blue"}


@click.command()
@click.argument('input_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--window-days', '-w', type=int, help='Baseline window in days')
@click.option('--limit', '-l', type=click.IntRange(min=1), default=20, help='Maximum anomalies to list')
@click.pass_context
def anomalies(ctx, input_file, window_days, limit):
    """
    Detect service/day cost anomalies against a trailing baseline

    Examples:
        costlens anomalies costs.json
        costlens anomalies costs.csv --window-days 14 --limit 5
    """
    console = ctx.obj['console']
    settings = ctx.obj['settings']
    detector = AnomalyDetector(settings.anomaly, settings.consolidation.rules)

    points = normalize(read_input(input_file))
    try:
        detected = detector.detect(points, window_days)
    except CostLensError as e:
        raise click.ClickException(str(e))

    report = detector.summarize(detected)

    if not report.anomalies:
        console.print("[green]No cost anomalies detected[/green]")
        return

    table = Table(title="Cost Anomalies", show_header=True, header_style="bold magenta")
    table.add_column("Date")
    table.add_column("Service", style="cyan")
    table.add_column("Cost", justify="right")
    table.add_column("Expected", justify="right")
    table.add_column("Z-Score", justify="right")
    table.add_column("Severity")

    for anomaly in report.anomalies[:limit]:
        low, high = anomaly.expected_range
        color = SEVERITY_COLORS[anomaly.severity.value]
        table.add_row(
            anomaly.date.isoformat(),
            anomaly.service_name,
            money(anomaly.cost_amount),
            f"{money(max(0.0, low))} - {money(high)}",
            f"{anomaly.deviation:+.2f}",
            f"[{color}]{anomaly.severity.value}[/{color}]",
        )

    console.print(table)

    breakdown = report.severity_breakdown
    lines = [
        f"Total: [bold]{report.total_anomalies}[/bold]  "
        f"High: [red]{breakdown['high']}[/red]  "
        f"Medium: [yellow]{breakdown['medium']}[/yellow]  "
        f"Low: [blue]{breakdown['low']}[/blue]",
    ]
    for rec in report.recommendations:
        lines.append(f"\n[bold]{rec['title']}[/bold]\n{rec['description']}\n[dim]{rec['action']}[/dim]")

    console.print(Panel("\n".join(lines), title="Anomaly Summary", border_style="red"))
