import click
import yaml
from pathlib import Path
from rich.panel import Panel
from rich.syntax import Syntax

from costlens.core.config import Settings


@click.group()
def config():
    """Inspect and create configuration files"""


@config.command()
@click.pass_context
def show(ctx):
    """
    Show the effective configuration

    Examples:
        costlens config show
        costlens --config ./costlens.yaml config show
    """
    console = ctx.obj['console']
    settings = ctx.obj['settings']

    content = yaml.safe_dump(settings.model_dump(mode="json"), default_flow_style=False, sort_keys=False)
    console.print(Panel(Syntax(content, "yaml"), title="Configuration", border_style="blue"))


@config.command()
@click.argument('path', type=click.Path(dir_okay=False))
@click.option('--force', is_flag=True, help='Overwrite an existing file')
@click.pass_context
def init(ctx, path, force):
    """Write a configuration file with default values"""
    console = ctx.obj['console']
    path = Path(path)

    if path.exists() and not force:
        raise click.ClickException(f"{path} already exists, use --force to overwrite")

    settings = Settings()
    if path.suffix == ".json":
        settings.to_json(path)
    else:
        settings.to_yaml(path)

    console.print(f"[green]✓ Configuration written to {path}[/green]")
