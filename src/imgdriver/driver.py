from __future__ import annotations

from pathlib import Path
from typing import Sequence

from common.console import echo_issue
from imgdriver.config import load_driver_config, resolve_config_path
from imgdriver.dispatcher import NOT_FOUND_EXIT, Dispatcher
from imgdriver.errors import ImageDriverError
from imgdriver.options import parse_driver_args
from imgdriver.registry import TestRegistry, populate_registry
from imgdriver.selection import SelectionProvider


def run_driver(
    argv: Sequence[str],
    config_path: Path | None = None,
    selection: SelectionProvider | None = None,
) -> int:
    """Load the driver config, register tests and dispatch ``argv``."""
    try:
        config = load_driver_config(resolve_config_path(config_path))
        options = parse_driver_args(argv, defaults=config.tolerance)
        registry = populate_registry(TestRegistry(), config.tests, config.register)
    except ImageDriverError as exc:
        echo_issue(exc)
        return NOT_FOUND_EXIT
    return Dispatcher(registry, selection=selection).dispatch(options)
