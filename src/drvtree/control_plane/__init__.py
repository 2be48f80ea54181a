"""Control plane: build dispatch over a resolved graph."""

from drvtree.control_plane.scheduler import (
    BuildFunction,
    BuildReport,
    BuildScheduler,
    DryRunBuilder,
)

__all__ = ["BuildFunction", "BuildReport", "BuildScheduler", "DryRunBuilder"]
