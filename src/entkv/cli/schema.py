"""entkv schema: export the JSON schema of entity models."""

from __future__ import annotations

import json
from typing import Any, Optional

import typer
import yaml

from entkv.cli import _exitcodes as ec
from entkv.cli._loader import load_models
from entkv.cli._output import print_error
from entkv.schema import ModelSchema


def schema_cmd(
    models: Optional[str] = typer.Option(None, "--models", help="Python import path for models"),
    models_path: Optional[str] = typer.Option(
        None, "--models-path", help="Filesystem path to models"
    ),
    model: Optional[str] = typer.Option(None, "--model", help="Only this entity model"),
    partial: bool = typer.Option(
        False, "--partial", help="Export the partial (update) variant"
    ),
    output: Optional[str] = typer.Option(None, "--output", help="Output file path"),
    fmt: str = typer.Option("json", "--format", help="Output format: json or yaml"),
) -> None:
    """Export entity model schemas for review and diffing."""
    if fmt not in ("json", "yaml"):
        print_error("--format must be 'json' or 'yaml'")
        raise typer.Exit(ec.USAGE_ERROR)

    if not models and not models_path:
        print_error("One of --models or --models-path is required")
        raise typer.Exit(ec.USAGE_ERROR)

    try:
        found = load_models(models, models_path)
    except Exception as e:
        print_error(f"Failed to load models: {e}")
        raise typer.Exit(ec.GENERAL_ERROR)

    if model is not None:
        if model not in found:
            print_error(f"Entity model '{model}' not found in models")
            raise typer.Exit(ec.USAGE_ERROR)
        found = {model: found[model]}

    data = {
        name: ModelSchema(cls).json_schema(partial=partial) for name, cls in sorted(found.items())
    }
    _write_output(data, output, fmt)


def _write_output(data: dict[str, Any], output: str | None, fmt: str) -> None:
    """Write schema data to file or stdout."""
    if fmt == "yaml":
        content = yaml.dump(data, default_flow_style=False)
    else:
        content = json.dumps(data, indent=2, default=str)

    if output:
        with open(output, "w") as f:
            f.write(content)
        print(f"Written to {output}")
    else:
        print(content)
