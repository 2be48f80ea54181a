"""Resolver layer: descriptor loading and recursive graph construction."""

from drvtree.resolver.descriptor import (
    IoError,
    LoadError,
    ParseError,
    ReferenceCycleError,
    read_descriptor,
)
from drvtree.resolver.resolver import DerivationResolver, IdentityPolicy, resolve

__all__ = [
    "DerivationResolver",
    "IdentityPolicy",
    "IoError",
    "LoadError",
    "ParseError",
    "ReferenceCycleError",
    "read_descriptor",
    "resolve",
]
