"""Partial-order build dispatch over a resolved derivation graph.

File: src/drvtree/control_plane/scheduler.py

The scheduler consumes the planner's leaves-first order and dispatches builds to an
injected ``BuildFunction``. A derivation starts only after every input derivation built
successfully, each derivation is dispatched at most once (guarded by a
:class:`ClaimRegistry`), and at most ``max_jobs`` builds run at the same time. A failed
build blocks its transitive dependents; independent subgraphs still complete.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from heapq import heappop, heappush
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

import structlog

from drvtree.planning.build_order import plan
from drvtree.utils.concurrency import BoundedSemaphore, CancellationToken, ClaimRegistry

if TYPE_CHECKING:
    from drvtree.domain.models import Derivation
    from drvtree.graph.derivation_graph import DerivationGraph, NodeHandle

BuildFunction = Callable[["NodeHandle", "Derivation"], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class BuildReport:
    """Outcome of one scheduler run."""

    completed: tuple[NodeHandle, ...]
    failed: Mapping[NodeHandle, str] = field(default_factory=lambda: MappingProxyType({}))
    skipped: tuple[NodeHandle, ...] = ()
    peak_concurrency: int = 0

    @property
    def succeeded(self) -> bool:
        return not self.failed and not self.skipped


class BuildScheduler:
    """Dispatch builds in dependency order with bounded parallelism."""

    def __init__(
        self,
        graph: DerivationGraph,
        build: BuildFunction,
        *,
        max_jobs: int = 4,
        cancel_token: CancellationToken | None = None,
        logger: Any | None = None,
    ) -> None:
        if max_jobs <= 0:
            raise ValueError("max_jobs must be > 0")
        self._graph = graph
        self._build = build
        self._max_jobs = max_jobs
        self._token = cancel_token
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    async def run(self) -> BuildReport:
        """Build every derivation in the graph; raises ``CycleError`` for cyclic graphs."""
        graph = self._graph
        order = plan(graph)
        position = {handle: index for index, handle in enumerate(order)}
        waiting_on: dict[NodeHandle, set[NodeHandle]] = {
            handle: set(graph.children(handle)) for handle in order
        }

        token = self._token or CancellationToken()
        semaphore = BoundedSemaphore(self._max_jobs)
        # fresh claims per run; a scheduler may run more than once
        claims = ClaimRegistry()
        ready: list[tuple[int, NodeHandle]] = []
        for handle in order:
            if not waiting_on[handle]:
                heappush(ready, (position[handle], handle))

        running: dict[asyncio.Task[None], NodeHandle] = {}
        completed: list[NodeHandle] = []
        failed: dict[NodeHandle, str] = {}
        blocked: set[NodeHandle] = set()

        try:
            while ready or running:
                token.raise_if_cancelled()
                while ready:
                    _, handle = heappop(ready)
                    if handle in blocked or not claims.claim(handle):
                        continue
                    task = asyncio.create_task(self._run_one(handle, semaphore))
                    running[task] = handle

                if not running:
                    break

                done, _ = await asyncio.wait(running, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    handle = running.pop(task)
                    error = _task_error(task)
                    if error is not None:
                        failed[handle] = error
                        blocked.update(graph.get_dependents(handle, transitive=True))
                        self._logger.error(
                            "build_failed",
                            name=graph[handle].name,
                            handle=handle,
                            error=error,
                        )
                        continue

                    completed.append(handle)
                    for dependent in graph.parents(handle):
                        pending = waiting_on[dependent]
                        pending.discard(handle)
                        if not pending and dependent not in blocked:
                            heappush(ready, (position[dependent], dependent))
        except asyncio.CancelledError:
            await _cancel_all(running)
            raise

        finished = set(completed) | set(failed)
        skipped = tuple(handle for handle in order if handle not in finished)
        report = BuildReport(
            completed=tuple(completed),
            failed=MappingProxyType(dict(failed)),
            skipped=skipped,
            peak_concurrency=semaphore.peak,
        )
        self._logger.info(
            "build_finished",
            completed=len(report.completed),
            failed=len(report.failed),
            skipped=len(report.skipped),
            peak_concurrency=report.peak_concurrency,
        )
        return report

    async def _run_one(self, handle: NodeHandle, semaphore: BoundedSemaphore) -> None:
        async with semaphore.permit():
            derivation = self._graph[handle]
            self._logger.info("build_dispatched", name=derivation.name, handle=handle)
            await self._build(handle, derivation)


class DryRunBuilder:
    """Build function that only records and logs what would be built."""

    def __init__(self, *, logger: Any | None = None) -> None:
        self.built: list[str] = []
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    async def __call__(self, handle: NodeHandle, derivation: Derivation) -> None:
        self.built.append(derivation.name)
        self._logger.info(
            "building_derivation",
            name=derivation.name,
            builder=derivation.builder,
            system=derivation.system,
            outputs=sorted(derivation.outputs),
        )
        await asyncio.sleep(0)


def _task_error(task: asyncio.Task[None]) -> str | None:
    if task.cancelled():
        return "build task cancelled"
    exc = task.exception()
    if exc is None:
        return None
    return str(exc) or exc.__class__.__name__


async def _cancel_all(running: Mapping[asyncio.Task[None], NodeHandle]) -> None:
    for task in running:
        task.cancel()
    if running:
        await asyncio.gather(*running, return_exceptions=True)


__all__ = ["BuildFunction", "BuildReport", "BuildScheduler", "DryRunBuilder"]
