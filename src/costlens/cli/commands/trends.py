import click
from rich.table import Table
from rich.panel import Panel

from costlens.analysis.normalizer import normalize
from costlens.analysis.trends import build_periods, compute_stats, trending_services
from costlens.core.exceptions import CostLensError

from ..output import money, read_input


@click.command()
@click.argument('input_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--granularity', '-g', type=click.Choice(['month', 'day']), default='month',
              help='Period bucketing')
@click.option('--limit', '-l', type=click.IntRange(min=1), default=10, help='Number of services to list')
@click.pass_context
def trends(ctx, input_file, granularity, limit):
    """
    Show period totals, growth rates and per-service trends

    Examples:
        costlens trends costs.json
        costlens trends costs.csv --granularity day
    """
    console = ctx.obj['console']
    settings = ctx.obj['settings']

    points = normalize(read_input(input_file))
    try:
        periods = build_periods(points, granularity, settings.consolidation.rules)
        services = trending_services(periods, limit)
    except CostLensError as e:
        raise click.ClickException(str(e))

    stats = compute_stats(periods)
    if stats is None:
        console.print("[yellow]No cost data found[/yellow]")
        return

    table = Table(title=f"Cost by {granularity}", show_header=True, header_style="bold magenta")
    table.add_column("Period", style="cyan")
    table.add_column("Cost", justify="right")
    table.add_column("Growth", justify="right")

    for period in periods:
        growth = period.growth_rate_pct
        if growth is None:
            growth_text = "[dim]n/a[/dim]"
        else:
            color = "red" if growth > 0 else "green"
            growth_text = f"[{color}]{growth:+.1f}%[/{color}]"
        table.add_row(period.period_label, money(period.total_cost), growth_text)

    console.print(table)

    service_table = Table(title="Trending Services", show_header=True, header_style="bold magenta")
    service_table.add_column("Service", style="cyan")
    service_table.add_column("Average", justify="right")
    service_table.add_column("Max", justify="right")
    service_table.add_column("Growth", justify="right")

    for service in services:
        growth = service.growth_rate_pct
        service_table.add_row(
            service.service_name,
            money(service.avg_cost),
            money(service.max_cost),
            f"{growth:+.1f}%" if growth is not None else "n/a",
        )

    console.print(service_table)

    trend_diff = f"{stats.trend_diff:+.1f}%" if stats.trend_diff is not None else "n/a"
    summary_text = f"""Average per {granularity}: [bold]{money(stats.avg_monthly_cost)}[/bold]
Highest: [red]{stats.highest_period.period_label}[/red] ({money(stats.highest_period.cost)})
Lowest: [green]{stats.lowest_period.period_label}[/green] ({money(stats.lowest_period.cost)})
Overall trend: [bold]{stats.overall_trend.value}[/bold] ({trend_diff})
Volatility: [bold]{stats.volatility.value}[/bold]"""

    if stats.insufficient_data:
        summary_text += "\n[yellow]Only one period available, trend is not meaningful[/yellow]"

    console.print(Panel(summary_text, title="Trend Summary", border_style="blue"))
