"""Image comparison, baseline selection and diff reporting."""

from .baselines import BaselineCandidate, BaselineSelection, enumerate_baselines, select_best
from .config import ToleranceSpec
from .diff_report import report_differences
from .image_compare import ComparisonResult, DiffError, ShapeMismatchError, compare_buffers
from .report import DriverIssue

__all__ = [
    "BaselineCandidate",
    "BaselineSelection",
    "ComparisonResult",
    "DiffError",
    "DriverIssue",
    "ShapeMismatchError",
    "ToleranceSpec",
    "compare_buffers",
    "enumerate_baselines",
    "report_differences",
    "select_best",
]
