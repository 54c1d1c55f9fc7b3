import click
from rich.table import Table
from rich.panel import Panel

from costlens.analysis.engine import CostAnalyticsEngine
from costlens.core.exceptions import CostLensError

from ..output import emit, money, read_input


@click.command()
@click.argument('input_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--window-days', '-w', type=int, help='Anomaly baseline window in days')
@click.option('--granularity', '-g', type=click.Choice(['day', 'month']), default='day',
              help='Period bucketing for trend statistics')
@click.option('--format', '-f', 'fmt', type=click.Choice(['table', 'json', 'yaml', 'markdown']),
              default='table', help='Output format')
@click.option('--output', '-o', type=click.Path(dir_okay=False), help='Output file for analysis results')
@click.pass_context
def analyze(ctx, input_file, window_days, granularity, fmt, output):
    """
    Run the full cost analysis over a billing export

    Examples:
        costlens analyze costs.json
        costlens analyze costs.csv --window-days 14 -f markdown -o report.md
    """
    console = ctx.obj['console']
    engine = CostAnalyticsEngine(ctx.obj['settings'])

    raw = read_input(input_file)
    try:
        report = engine.analyze(raw, window_days=window_days, granularity=granularity)
    except CostLensError as e:
        raise click.ClickException(str(e))

    if fmt != 'table':
        emit(console, report.to_dict(), fmt, output)
        return

    _display_services(console, report)
    _display_suggestions(console, report)

    stats = report.statistics
    trend = f"{stats.overall_trend.value} / {stats.volatility.value} volatility" if stats else "n/a"
    summary_text = f"""[bold green]Analysis Complete![/bold green]

Total Cost: [bold]{money(report.total_cost)}[/bold]
Projected Month End: [bold]{money(report.month_end_projection)}[/bold]
Trend: [cyan]{trend}[/cyan]
Anomalies: [bold]{report.anomalies.total_anomalies}[/bold] ({report.window_days}-day baseline)
Potential Savings: [bold yellow]{money(report.potential_savings)}/month[/bold yellow]"""

    console.print("\n")
    console.print(Panel(summary_text, title="Analysis Summary", border_style="green"))


def _display_services(console, report):
    table = Table(title="Cost by Service", show_header=True, header_style="bold magenta")
    table.add_column("Service", style="cyan")
    table.add_column("Cost", justify="right")
    table.add_column("Share", justify="right")

    for service in report.consolidation.services:
        share = report.consolidation.share_pct(service.display_name)
        table.add_row(
            f"[{service.color}]●[/] {service.display_name}",
            money(service.total_cost),
            f"{share:.1f}%" if share is not None else "n/a",
        )

    console.print(table)


def _display_suggestions(console, report):
    if not report.suggestions:
        return

    table = Table(title="Optimization Opportunities", show_header=True, header_style="bold magenta")
    table.add_column("Suggestion", style="cyan")
    table.add_column("Severity")
    table.add_column("Savings/Month", justify="right", style="green")

    for suggestion in report.suggestions:
        color = "yellow" if suggestion.severity.value == "warning" else "blue"
        table.add_row(
            suggestion.title,
            f"[{color}]{suggestion.severity.value}[/{color}]",
            money(suggestion.potential_savings),
        )

    console.print(table)
