import click
import pydantic
from pathlib import Path
from rich.table import Table
from rich.panel import Panel

from costlens.analysis.engine import CostAnalyticsEngine
from costlens.analysis.forecasting import BusinessContext, compare_scenarios
from costlens.core.exceptions import CostLensError
from costlens.core.validation import ForecastRequest

from ..loader import load_scenarios
from ..output import emit, money, read_input

RISK_COLORS = {"high": "red", "medium": "yellow", "low": "green"}


@click.command()
@click.argument('input_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--horizon', 'horizon', type=click.Choice(['3', '6', '12']),
              help='Forecast horizon in months')
@click.option('--no-seasonality', is_flag=True, help='Disable calendar-month seasonal factors')
@click.option('--scenarios', '-s', 'scenario_file', type=click.Path(exists=True, dir_okay=False),
              help='YAML/JSON file with what-if scenarios')
@click.option('--revenue-per-dollar', type=float, help='Revenue earned per dollar of cloud cost')
@click.option('--format', '-f', 'fmt', type=click.Choice(['table', 'json', 'yaml', 'markdown']),
              default='table', help='Output format')
@click.option('--output', '-o', type=click.Path(dir_okay=False), help='Output file for the forecast')
@click.pass_context
def forecast(ctx, input_file, horizon, no_seasonality, scenario_file, revenue_per_dollar, fmt, output):
    """
    Forecast monthly cost and evaluate what-if scenarios

    Examples:
        costlens forecast costs.json --horizon 12
        costlens forecast costs.csv -s scenarios.yaml --revenue-per-dollar 4.5
    """
    console = ctx.obj['console']
    settings = ctx.obj['settings']
    engine = CostAnalyticsEngine(settings)

    try:
        request = ForecastRequest(
            horizon_months=int(horizon) if horizon else settings.forecast.horizon_months,
            seasonality_enabled=not no_seasonality and settings.forecast.seasonality_enabled,
            revenue_per_dollar=revenue_per_dollar,
        )
        scenario_defs = load_scenarios(Path(scenario_file)) if scenario_file else []
    except pydantic.ValidationError as e:
        raise click.ClickException(f"Invalid forecast options: {e}")
    except CostLensError as e:
        raise click.ClickException(str(e))

    business = None
    if request.revenue_per_dollar is not None:
        business = BusinessContext(revenue_per_dollar=request.revenue_per_dollar)

    raw = read_input(input_file)
    try:
        result = engine.forecast(raw, request.horizon_months, request.seasonality_enabled, business)
        scenarios = []
        if scenario_defs:
            scenarios = engine.run_scenarios(raw, scenario_defs, request.horizon_months,
                                             request.seasonality_enabled, business)
    except CostLensError as e:
        raise click.ClickException(str(e))

    comparison = compare_scenarios(scenarios) if scenarios else None

    if fmt != 'table':
        emit(console, result.to_dict(), fmt, output, template_name="forecast", scenarios=comparison)
        return

    table = Table(title=f"{request.horizon_months}-Month Forecast", show_header=True,
                  header_style="bold magenta")
    table.add_column("#", justify="right")
    table.add_column("Month", style="cyan")
    table.add_column("Base", justify="right")
    table.add_column("Adjusted", justify="right")
    table.add_column("Revenue", justify="right")
    table.add_column("Confidence", justify="right")

    for period in result.periods:
        table.add_row(
            str(period.period_index),
            period.date.strftime("%Y-%m"),
            money(period.base_cost),
            money(period.business_adjusted_cost),
            money(period.revenue_projection),
            f"{period.confidence_level:.0f}%",
        )

    console.print(table)

    if comparison:
        scenario_table = Table(title="Scenarios", show_header=True, header_style="bold magenta")
        scenario_table.add_column("Scenario", style="cyan")
        scenario_table.add_column("Total", justify="right")
        scenario_table.add_column("Variance", justify="right")
        scenario_table.add_column("Impact", justify="right")
        scenario_table.add_column("Risk")

        for row in comparison:
            impact = row['percentageImpact']
            color = RISK_COLORS[row['riskLevel']]
            scenario_table.add_row(
                row['name'],
                money(row['totalCost']),
                money(row['costVariance']),
                f"{impact:+.1f}%" if impact is not None else "n/a",
                f"[{color}]{row['riskLevel']}[/{color}]",
            )

        console.print(scenario_table)

    growth = f"{result.growth_rate * 100:+.1f}%/month" if result.growth_rate is not None else "n/a"
    summary_text = f"""Total projected: [bold]{money(result.total_projected_cost)}[/bold]
Base trend total: {money(result.total_base_cost)}
Historical growth: [cyan]{growth}[/cyan]
Confidence: [bold]{result.confidence:.0f}%[/bold]"""

    trailing = result.business_metrics.get("trailingMonth")
    if trailing:
        summary_text += (f"\n[dim]Partial month {trailing['periodLabel']} "
                         f"({trailing['observedDays']}/{trailing['daysInMonth']} days) "
                         f"{trailing['action']}[/dim]")

    if result.insufficient_data:
        summary_text += "\n[yellow]No month-over-month growth can be derived, projection is flat[/yellow]"

    console.print(Panel(summary_text, title="Forecast Summary", border_style="green"))
