"""Public interface for the SPL XML adapter."""

from __future__ import annotations

from .fidelity import SplComparer
from .reader import SplReader, content_hash, parse_xml
from .references import ReferenceIndex, resolve_references
from .writer import SplWriter

__all__ = [
    "ReferenceIndex",
    "SplComparer",
    "SplReader",
    "SplWriter",
    "content_hash",
    "parse_xml",
    "resolve_references",
]
