import click
import logging
from pathlib import Path

import pydantic
from rich.console import Console
from rich.logging import RichHandler

from costlens import __version__
from costlens.core.config import get_settings, reload_settings
from costlens.core.exceptions import ConfigurationError
from costlens.core.logging import configure_from_settings

from .commands import analyze, anomalies, config, forecast, trends

console = Console()
log_console = Console(stderr=True)


@click.group()
@click.version_option(version=__version__, prog_name='costlens')
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False),
              help='Path to configuration file (YAML or JSON)')
@click.pass_context
def cli(ctx, debug, config_path):
    """
    CostLens - cloud cost analytics and forecasting

    Analyze billing exports for trends, anomalies, forecasts and savings opportunities.
    """
    ctx.ensure_object(dict)

    try:
        settings = reload_settings(Path(config_path)) if config_path else get_settings()
    except (pydantic.ValidationError, ConfigurationError) as e:
        raise click.ClickException(f"Invalid configuration: {e}")

    log_config = settings.logging
    if debug:
        log_config = log_config.model_copy(update={"level": "DEBUG"})

    handler = RichHandler(console=log_console, rich_tracebacks=True, show_path=False)
    configure_from_settings(log_config, handler=handler)

    ctx.obj['settings'] = settings
    ctx.obj['console'] = console


cli.add_command(analyze.analyze)
cli.add_command(trends.trends)
cli.add_command(anomalies.anomalies)
cli.add_command(forecast.forecast)
cli.add_command(config.config)


if __name__ == '__main__':
    cli()
