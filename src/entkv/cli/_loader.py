"""Model loader: import a Python module and discover entity models."""

from __future__ import annotations

import importlib
import sys
from pathlib import Path

from entkv.types import EntityModel


def load_models(
    models: str | None = None,
    models_path: str | None = None,
) -> dict[str, type[EntityModel]]:
    """Load EntityModel subclasses from a Python module.

    Args:
        models: Dotted Python import path (e.g. 'myapp.models')
        models_path: Filesystem path to a Python file

    Returns:
        Entity model classes keyed by class name
    """
    if models_path:
        path = Path(models_path).resolve()
        if not path.exists():
            raise FileNotFoundError(f"Models path not found: {models_path}")
        # Add parent to sys.path so import works
        parent = str(path.parent)
        if parent not in sys.path:
            sys.path.insert(0, parent)
        module = importlib.import_module(path.stem)
    elif models:
        module = importlib.import_module(models)
    else:
        raise ValueError("One of --models or --models-path is required")

    found: dict[str, type[EntityModel]] = {}
    for attr_name in dir(module):
        obj = getattr(module, attr_name)
        if isinstance(obj, type) and issubclass(obj, EntityModel) and obj is not EntityModel:
            found[obj.__name__] = obj
    return found
