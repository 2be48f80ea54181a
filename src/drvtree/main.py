"""Process entrypoint for ``drvtree``: maps outcomes onto exit codes.

``0`` success, ``1`` a derivation failed to build, ``2`` bad configuration,
``3`` the derivation graph could not be loaded (missing file, bad JSON, cycle),
``4`` anything unexpected.
"""

from __future__ import annotations

import sys
import traceback
from enum import IntEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence


class ExitCode(IntEnum):
    SUCCESS = 0
    BUILD_FAILED = 1
    CONFIG_ERROR = 2
    LOAD_ERROR = 3
    INTERNAL_ERROR = 4


def cli_entrypoint(argv: Sequence[str] | None = None) -> int:
    try:
        from drvtree.ui.cli import run_cli

        return _as_exit_code(run_cli(argv))
    except SystemExit as exc:
        # argparse exits on --help and usage errors
        return _as_exit_code(exc.code)
    except Exception as exc:
        code = _route_exception(exc)
        if code is ExitCode.INTERNAL_ERROR:
            traceback.print_exception(exc, file=sys.stderr)
        else:
            print(str(exc).strip() or type(exc).__name__, file=sys.stderr)
        return int(code)


def _as_exit_code(raw: object) -> int:
    if raw is None:
        return int(ExitCode.SUCCESS)
    if isinstance(raw, int) and raw in ExitCode._value2member_map_:
        return raw
    if isinstance(raw, str) and raw.strip():
        print(raw.strip(), file=sys.stderr)
    return int(ExitCode.INTERNAL_ERROR)


def _route_exception(exc: BaseException) -> ExitCode:
    """Exit code for ``exc``, looking through what it was raised from."""
    from drvtree.config import ConfigLoadError, ConfigValidationError
    from drvtree.planning import CycleError
    from drvtree.resolver import LoadError

    for link in _causes(exc):
        if isinstance(link, (ConfigLoadError, ConfigValidationError)):
            return ExitCode.CONFIG_ERROR
        if isinstance(link, (LoadError, CycleError)):
            return ExitCode.LOAD_ERROR
    return ExitCode.INTERNAL_ERROR


def _causes(exc: BaseException) -> Iterator[BaseException]:
    visited: set[int] = set()
    link: BaseException | None = exc
    while link is not None and id(link) not in visited:
        visited.add(id(link))
        yield link
        if link.__cause__ is not None:
            link = link.__cause__
        elif link.__suppress_context__:
            link = None
        else:
            link = link.__context__


__all__ = ["ExitCode", "cli_entrypoint"]
