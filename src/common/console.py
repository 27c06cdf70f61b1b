from __future__ import annotations

from typing import Any

import typer


def echo_issue(issue: Any, level: str = "ERROR") -> None:
    typer.echo(f"{level} {issue.code}: {issue.message}", err=True)
    if issue.hint:
        typer.echo(f"HINT: {issue.hint}", err=True)


def echo_measurement(name: str, value: Any, kind: str = "numeric/double") -> None:
    typer.echo(f'<DartMeasurement name="{name}" type="{kind}">{value}</DartMeasurement>')


def echo_measurement_file(name: str, path: Any, kind: str = "image/png") -> None:
    typer.echo(f'<DartMeasurementFile name="{name}" type="{kind}">{path}</DartMeasurementFile>')
