from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

import numpy as np
import typer

from common.console import echo_issue, echo_measurement
from common.image_io import DecodeError, decode_image, encode_image
from common.pixel_buffer import PixelBuffer
from comparators.baselines import UNSCORED, enumerate_baselines, select_best
from comparators.config import ToleranceSpec
from comparators.diff_report import ARTIFACTS, artifact_path, report_differences
from comparators.report import DriverIssue, PairReport
from imgdriver.errors import ImageDriverError
from imgdriver.options import DriverOptions
from imgdriver.registry import TestRegistry, TestRegistryEntry
from imgdriver.selection import SelectionProvider, StreamSelection

NOT_FOUND_EXIT = -1
FAILURE_EXIT = -1

E7001_TEST_DECODE_FAILED = "E7001_TEST_DECODE_FAILED"
E7201_TEST_NOT_FOUND = "E7201_TEST_NOT_FOUND"
E7202_INVALID_SELECTION = "E7202_INVALID_SELECTION"
E7203_ENTRY_POINT_DRIVER_ERROR = "E7203_ENTRY_POINT_DRIVER_ERROR"
E7204_ENTRY_POINT_EXCEPTION = "E7204_ENTRY_POINT_EXCEPTION"
E7205_ENTRY_POINT_UNKNOWN = "E7205_ENTRY_POINT_UNKNOWN"


@dataclass
class EntryPointOutcome:
    exit_code: int
    issue: DriverIssue | None = None


@dataclass
class DispatchReport:
    test_name: str | None
    exit_code: int
    result: int = 0
    pairs: list[PairReport] = field(default_factory=list)
    issues: list[DriverIssue] = field(default_factory=list)


def print_available_tests(registry: TestRegistry) -> None:
    typer.echo("Available tests:")
    for index, name in enumerate(registry.names()):
        typer.echo(f"{index}. {name}")


def _system_exit_code(exc: SystemExit) -> int:
    if exc.code is None:
        return 0
    if isinstance(exc.code, int):
        return exc.code
    return 1


def invoke_entry_point(entry: TestRegistryEntry, argv: list[str]) -> EntryPointOutcome:
    """Run ``entry`` and turn anything it raises into an outcome."""
    try:
        return EntryPointOutcome(exit_code=entry.run(argv))
    except SystemExit as exc:
        return EntryPointOutcome(exit_code=_system_exit_code(exc))
    except ImageDriverError as exc:
        issue = DriverIssue(
            code=E7203_ENTRY_POINT_DRIVER_ERROR,
            message=f"Image test driver caught a driver error in {entry.name}: {exc.code}: {exc.message}",
            hint=exc.hint,
            context={"test": entry.name, "category": "driver", "error_code": exc.code},
        )
    except Exception as exc:  # noqa: BLE001
        issue = DriverIssue(
            code=E7204_ENTRY_POINT_EXCEPTION,
            message=f"Image test driver caught an exception in {entry.name}: {type(exc).__name__}: {exc}",
            hint="Run the test directly to see the full traceback.",
            context={"test": entry.name, "category": "exception"},
        )
    except BaseException as exc:  # noqa: BLE001
        issue = DriverIssue(
            code=E7205_ENTRY_POINT_UNKNOWN,
            message=f"Image test driver caught an unknown exception in {entry.name}: {type(exc).__name__}",
            hint="The test raised something that is not an Exception subclass.",
            context={"test": entry.name, "category": "unknown"},
        )
    return EntryPointOutcome(exit_code=FAILURE_EXIT, issue=issue)


def final_exit_code(result: int, expect_fail: bool) -> int:
    if not expect_fail:
        return result
    return 0 if result > 0 else 1


def process_exit_code(result: int) -> int:
    """Map a dispatcher result onto a 0..255 process status.

    255 is the not-found or harness-failure status and 254 stands for any
    other negative code a test returns. Positive results cap at 253. A test
    that itself returns -1 still reads as a harness failure.
    """
    if result == NOT_FOUND_EXIT:
        return 255
    if result < 0:
        return 254
    return min(result, 253)


class Dispatcher:
    def __init__(
        self,
        registry: TestRegistry,
        selection: SelectionProvider | None = None,
        reader: Callable[[Path], PixelBuffer] = decode_image,
        writer: Callable[[Path, np.ndarray], None] = encode_image,
    ) -> None:
        self.registry = registry
        self.selection = selection or StreamSelection()
        self.reader = reader
        self.writer = writer

    def dispatch(self, options: DriverOptions) -> int:
        return self.run(options).exit_code

    def _select_interactively(self, report: DispatchReport) -> str | None:
        names = self.registry.names()
        print_available_tests(self.registry)
        index = self.selection.select(names)
        if index is None or index < 0 or index >= len(names):
            issue = DriverIssue(
                code=E7202_INVALID_SELECTION,
                message=f"{index if index is not None else 'input'} is an invalid test number",
                hint=f"Enter a number between 0 and {len(names) - 1}." if names else "No tests are registered.",
            )
            echo_issue(issue)
            report.issues.append(issue)
            return None
        return names[index]

    def run(self, options: DriverOptions) -> DispatchReport:
        self.registry.freeze()
        report = DispatchReport(test_name=options.test_name, exit_code=NOT_FOUND_EXIT)
        name = options.test_name
        if name is None:
            name = self._select_interactively(report)
            if name is None:
                return report
            report.test_name = name
        entry = self.registry.get(name)
        if entry is None:
            print_available_tests(self.registry)
            issue = DriverIssue(
                code=E7201_TEST_NOT_FOUND,
                message=f"Failed: {name}: No test registered with name {name}",
                hint="Pick one of the available tests listed above.",
                context={"test": name},
            )
            echo_issue(issue)
            report.issues.append(issue)
            return report

        outcome = invoke_entry_point(entry, [name, *options.test_args])
        result = outcome.exit_code
        if outcome.issue is not None:
            echo_issue(outcome.issue)
            report.issues.append(outcome.issue)
        else:
            try:
                for baseline_path, test_path in options.compare:
                    pair = self.compare_pair(baseline_path, test_path, options.tolerance, options.expect_fail)
                    report.pairs.append(pair)
                    result += pair.score
            except Exception as exc:  # noqa: BLE001
                issue = DriverIssue(
                    code=E7204_ENTRY_POINT_EXCEPTION,
                    message=f"Image test driver caught an exception while comparing: {type(exc).__name__}: {exc}",
                    hint="Check the --compare paths and image contents.",
                    context={"test": name, "category": "exception"},
                )
                echo_issue(issue)
                report.issues.append(issue)
                result = FAILURE_EXIT
        report.result = result
        report.exit_code = final_exit_code(result, options.expect_fail)
        return report

    def compare_pair(
        self,
        baseline_path: Path,
        test_path: Path,
        tolerance: ToleranceSpec,
        expect_fail: bool = False,
    ) -> PairReport:
        """Score ``test_path`` against the best of its baselines."""
        pair = PairReport(baseline_path=Path(baseline_path), test_path=Path(test_path))
        try:
            test_buffer = self.reader(pair.test_path)
        except DecodeError as exc:
            issue = DriverIssue(
                code=E7001_TEST_DECODE_FAILED,
                message=f"Exception detected while reading {pair.test_path}: {exc.reason}",
                hint="Check that the test wrote its output image.",
                context={"path": str(pair.test_path)},
            )
            echo_issue(issue)
            pair.issues.append(issue)
            pair.best_baseline = pair.baseline_path
            pair.score = UNSCORED
            echo_measurement("BaselineImageName", pair.baseline_path.name, kind="text/string")
            return pair

        selection = select_best(enumerate_baselines(pair.baseline_path), test_buffer, tolerance, reader=self.reader)
        for issue in selection.issues:
            echo_issue(issue)
        pair.issues.extend(selection.issues)
        pair.best_baseline = selection.best_path
        pair.score = selection.score
        pair.passed = selection.passed

        if not selection.passed and not expect_fail and selection.baseline is not None and selection.result is not None:
            pair.issues.extend(
                report_differences(
                    selection.best_path,
                    pair.test_path,
                    test_buffer,
                    selection.baseline,
                    selection.result,
                    writer=self.writer,
                )
            )
            pair.artifacts = [artifact_path(pair.test_path, suffix) for _, suffix in ARTIFACTS]

        echo_measurement("BaselineImageName", selection.best_path.name, kind="text/string")
        return pair
