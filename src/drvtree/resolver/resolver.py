"""Recursive, deduplicating derivation graph resolution.

File: src/drvtree/resolver/resolver.py

Starting from a root descriptor, every ``inputDrvs`` reference is loaded and linked into a
single :class:`DerivationGraph`. Nodes are deduplicated by an explicit identity policy and
references back into descriptors that are still being resolved are rejected. Resolution
is all-or-nothing: any load failure discards the partial graph.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from drvtree.graph.derivation_graph import DerivationGraph, NodeHandle
from drvtree.resolver.descriptor import ReferenceCycleError, read_descriptor

if TYPE_CHECKING:
    from drvtree.domain.models import Derivation

DescriptorReader = Callable[[Path], "Derivation"]


class IdentityPolicy(str, Enum):
    """Key used to decide whether two descriptors are the same graph node."""

    NAME = "name"
    CONTENT = "content"


@dataclass(slots=True)
class _Frame:
    handle: NodeHandle
    key: str
    location: Path
    pending: Iterator[str]


@dataclass(slots=True)
class _ResolutionRun:
    graph: DerivationGraph = field(default_factory=DerivationGraph)
    frames: list[_Frame] = field(default_factory=list)
    resolving_keys: set[str] = field(default_factory=set)
    resolved_paths: dict[Path, NodeHandle] = field(default_factory=dict)
    locations: dict[NodeHandle, Path] = field(default_factory=dict)
    reads: int = 0


class DerivationResolver:
    """Build a frozen :class:`DerivationGraph` from a root descriptor path."""

    def __init__(
        self,
        *,
        identity: IdentityPolicy | str = IdentityPolicy.NAME,
        reader: DescriptorReader | None = None,
        logger: Any | None = None,
    ) -> None:
        self.identity = IdentityPolicy(identity)
        self._reader: DescriptorReader = reader if reader is not None else read_descriptor
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    def resolve(self, root_path: Path | str) -> tuple[DerivationGraph, NodeHandle]:
        """Resolve ``root_path`` and everything it references.

        Returns the frozen graph and the handle of the root node. Raises
        :class:`~drvtree.resolver.descriptor.LoadError` on the first failure.
        """
        run = _ResolutionRun()
        # only the caller-supplied root gets ~ and $VAR expansion; input keys are literal paths
        root_text = os.path.expandvars(os.path.expanduser(str(root_path)))
        root_location = _locate(root_text, relative_to=None)
        root = self._enter(run, root_location)

        while run.frames:
            frame = run.frames[-1]
            input_path = next(frame.pending, None)
            if input_path is None:
                run.frames.pop()
                run.resolving_keys.discard(frame.key)
                run.resolved_paths[frame.location] = frame.handle
                continue

            child_location = _locate(input_path, relative_to=frame.location.parent)
            child = self._enter(run, child_location)
            run.graph.add_edge(frame.handle, child)

        run.graph.freeze()
        self._logger.info(
            "resolver_completed",
            root=str(root_location),
            nodes=len(run.graph),
            edges=run.graph.edge_count,
            descriptor_reads=run.reads,
            identity=self.identity.value,
        )
        return run.graph, root

    def identity_key(self, derivation: Derivation) -> str:
        if self.identity is IdentityPolicy.CONTENT:
            return f"sha256:{derivation.content_hash()}"
        return derivation.name

    def _enter(self, run: _ResolutionRun, location: Path) -> NodeHandle:
        cached = run.resolved_paths.get(location)
        if cached is not None:
            return cached

        if any(frame.location == location for frame in run.frames):
            raise ReferenceCycleError([*(frame.location for frame in run.frames), location])

        derivation = self._reader(location)
        run.reads += 1
        key = self.identity_key(derivation)

        existing = run.graph.lookup(key)
        if existing is not None:
            if key in run.resolving_keys:
                raise ReferenceCycleError([*(frame.location for frame in run.frames), location])
            self._check_collision(run, existing, derivation, location)
            run.resolved_paths[location] = existing
            return existing

        handle = run.graph.add_node(derivation, key=key)
        run.locations[handle] = location
        run.resolving_keys.add(key)
        run.frames.append(
            _Frame(
                handle=handle,
                key=key,
                location=location,
                pending=iter(derivation.input_paths),
            )
        )
        self._logger.debug(
            "resolver_adding_derivation",
            name=derivation.name,
            path=str(location),
            handle=handle,
            inputs=len(derivation.input_derivations),
        )
        return handle

    def _check_collision(
        self,
        run: _ResolutionRun,
        existing: NodeHandle,
        derivation: Derivation,
        location: Path,
    ) -> None:
        if self.identity is not IdentityPolicy.NAME:
            return
        kept = run.graph[existing]
        if kept.content_hash() == derivation.content_hash():
            return
        self._logger.warning(
            "resolver_identity_collision",
            name=derivation.name,
            kept_path=str(run.locations.get(existing, "")),
            ignored_path=str(location),
        )


def resolve(
    root_path: Path | str,
    *,
    identity: IdentityPolicy | str = IdentityPolicy.NAME,
    logger: Any | None = None,
) -> tuple[DerivationGraph, NodeHandle]:
    """Resolve ``root_path`` with a default-configured :class:`DerivationResolver`."""

    return DerivationResolver(identity=identity, logger=logger).resolve(root_path)


def _locate(raw: Path | str, *, relative_to: Path | None) -> Path:
    candidate = Path(raw)
    if not candidate.is_absolute():
        base = relative_to if relative_to is not None else Path.cwd()
        candidate = base / candidate
    return Path(os.path.normpath(str(candidate)))


__all__ = ["DerivationResolver", "DescriptorReader", "IdentityPolicy", "resolve"]
