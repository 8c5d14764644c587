from __future__ import annotations
from typing import Callable, List, Tuple
from sqlalchemy.engine import Engine
import logging
import pkgutil
import importlib
import sys
from pathlib import Path

logger = logging.getLogger(__name__)

SchemaInstaller = Callable[[Engine], None]

# (name, installer) in registration order; discovery imports modules alphabetically
_REGISTRY: List[Tuple[str, SchemaInstaller]] = []


def register(name: str) -> Callable[[SchemaInstaller], SchemaInstaller]:
    """
    Decorator for a schema installer:

        @register("results")
        def install_schema(engine): ...

    A name registers once; re-importing the module is a no-op.
    """
    if not isinstance(name, str) or not name:
        raise TypeError("register() needs a schema name")

    def decorator(fn: SchemaInstaller) -> SchemaInstaller:
        if name not in registered_names():
            _REGISTRY.append((name, fn))
        return fn

    return decorator


def registered_names() -> List[str]:
    return [name for name, _ in _REGISTRY]


def run_all(engine: Engine) -> List[str]:
    """
    Run every registered installer against ``engine``.

    Returns the names of installers that failed; the others still run.
    """
    logger.info("SchemaRegistry: running %d installers", len(_REGISTRY))
    failed: List[str] = []
    for name, installer_fn in _REGISTRY:
        try:
            installer_fn(engine)
        except Exception:
            logger.exception("FAILED to apply schema %s", name)
            failed.append(name)
    if failed:
        logger.warning("SchemaRegistry: %d installer(s) failed: %s", len(failed), ", ".join(failed))
    else:
        logger.info("SchemaRegistry: all installers complete")
    return failed


def auto_discover(start_path: str | Path = "schemas", root_package: str | None = None) -> List[str]:
    """
    Import every module under ``start_path`` so their @register decorators run.

    Returns the module names that failed to import.
    """
    start_path = Path(start_path)
    if not start_path.is_dir():
        logger.warning("Schema auto_discover: %s is not a directory. Skipping.", start_path)
        return []

    if root_package:
        prefix = f"{root_package}.{start_path.name}."
    else:
        parent_dir = str(start_path.parent.resolve())
        if parent_dir not in sys.path:
            sys.path.insert(0, parent_dir)
        prefix = f"{start_path.name}."

    broken: List[str] = []
    for module in sorted(pkgutil.iter_modules([str(start_path)]), key=lambda m: m.name):
        if module.ispkg or module.name.startswith("_"):
            continue
        module_name = prefix + module.name
        try:
            importlib.import_module(module_name)
        except Exception:
            logger.exception("FAILED to import schema module %s", module_name)
            broken.append(module_name)
    return broken
