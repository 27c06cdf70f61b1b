"""Image regression test driver."""

from .dispatcher import Dispatcher, invoke_entry_point, process_exit_code
from .errors import ImageDriverError
from .options import DriverOptions, parse_driver_args
from .registry import TestRegistry, TestRegistryEntry

__all__ = [
    "Dispatcher",
    "DriverOptions",
    "ImageDriverError",
    "TestRegistry",
    "TestRegistryEntry",
    "invoke_entry_point",
    "parse_driver_args",
    "process_exit_code",
]
