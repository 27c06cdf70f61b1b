from __future__ import annotations

import importlib
from dataclasses import dataclass
from typing import Any, Callable

import typer

from imgdriver.errors import ImageDriverError

EntryPoint = Callable[[list[str]], Any]

W7001_DUPLICATE_TEST = "W7001_DUPLICATE_TEST"
E7207_REGISTRY_FROZEN = "E7207_REGISTRY_FROZEN"
E7302_ENTRY_POINT_INVALID = "E7302_ENTRY_POINT_INVALID"


@dataclass(frozen=True)
class TestRegistryEntry:
    __test__ = False

    name: str
    entry_point: EntryPoint

    def run(self, argv: list[str]) -> int:
        code = self.entry_point(argv)
        return 0 if code is None else int(code)


class TestRegistry:
    """Name to entry point table, filled once before the first dispatch."""

    __test__ = False

    def __init__(self) -> None:
        self._entries: dict[str, TestRegistryEntry] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, name: str, entry_point: EntryPoint) -> TestRegistryEntry:
        if self._frozen:
            raise ImageDriverError(
                code=E7207_REGISTRY_FROZEN,
                message=f"Cannot register {name}: dispatch has already started.",
                hint="Register every test before dispatching.",
            )
        if name in self._entries:
            # Last registration wins.
            typer.echo(f"WARNING {W7001_DUPLICATE_TEST}: test {name} registered twice; keeping the last one.", err=True)
        entry = TestRegistryEntry(name=name, entry_point=entry_point)
        self._entries[name] = entry
        return entry

    def test(self, name: str | None = None) -> Callable[[EntryPoint], EntryPoint]:
        def decorator(func: EntryPoint) -> EntryPoint:
            self.register(name or func.__name__, func)
            return func

        return decorator

    def freeze(self) -> None:
        self._frozen = True

    def get(self, name: str) -> TestRegistryEntry | None:
        return self._entries.get(name)

    def names(self) -> list[str]:
        return sorted(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def load_entry_point(spec: str) -> Any:
    module_name, sep, attr_path = spec.partition(":")
    if not sep or not module_name or not attr_path:
        raise ImageDriverError(
            code=E7302_ENTRY_POINT_INVALID,
            message=f"Invalid entry point spec: {spec!r}",
            hint="Use the form package.module:function.",
        )
    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as exc:
        raise ImageDriverError(
            code=E7302_ENTRY_POINT_INVALID,
            message=f"Cannot import {module_name}: {exc}",
            hint="Check that the module is importable from the driver environment.",
        ) from exc
    for attr in attr_path.split("."):
        try:
            target = getattr(target, attr)
        except AttributeError as exc:
            raise ImageDriverError(
                code=E7302_ENTRY_POINT_INVALID,
                message=f"{module_name} has no attribute {attr_path}",
                hint="Check the function name in the entry point spec.",
            ) from exc
    if not callable(target):
        raise ImageDriverError(
            code=E7302_ENTRY_POINT_INVALID,
            message=f"Entry point {spec} is not callable",
            hint="Point the spec at a function taking an argument list.",
        )
    return target


def populate_registry(registry: TestRegistry, tests: dict[str, str], hooks: list[str]) -> TestRegistry:
    for name, spec in tests.items():
        registry.register(name, load_entry_point(spec))
    for hook in hooks:
        register_tests = load_entry_point(hook)
        try:
            register_tests(registry)
        except ImageDriverError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise ImageDriverError(
                code=E7302_ENTRY_POINT_INVALID,
                message=f"Registration hook {hook} failed: {exc}",
                hint="Fix the registration function named in the driver config.",
            ) from exc
    return registry
