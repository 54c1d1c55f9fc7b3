"""Shared output handling for CLI commands"""

from pathlib import Path
from typing import Any, Dict, List, Optional

import click

from costlens.core.exceptions import CostLensError
from costlens.reporting.renderer import ReportRenderer

from .loader import load_cost_data

renderer = ReportRenderer()


def money(value: Optional[float]) -> str:
    if value is None:
        return "n/a"
    return f"${value:,.2f}"


def read_input(path: str) -> Any:
    try:
        return load_cost_data(Path(path))
    except CostLensError as e:
        raise click.ClickException(str(e))


def emit(console, data: Dict[str, Any], fmt: str, output: Optional[str],
         template_name: str = "analysis", scenarios: Optional[List[Dict[str, Any]]] = None):
    """Print or save a rendered result"""
    content = renderer.render(data, fmt, template_name, scenarios)
    if output:
        renderer.write(content, Path(output))
        console.print(f"\n✓ Results saved to [green]{output}[/green]")
    else:
        click.echo(content)
