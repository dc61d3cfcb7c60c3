"""
Retry identity module.

Derives a stable fingerprint for a job invocation so that every worker,
in any process, addresses the same attempt counter for the same job name
and arguments.
"""

import hashlib
from collections.abc import Mapping
from typing import Any, Sequence

ARG_SEPARATOR = "-"


def canonicalize(value: Any) -> str:
    """
    Render one job argument as text.

    Mappings and sets are rendered in sorted order so the result never
    depends on insertion or iteration order. Lists and tuples keep their
    order.
    """
    if isinstance(value, Mapping):
        items = sorted(
            (canonicalize(k), canonicalize(v)) for k, v in value.items()
        )
        return "map[" + " ".join(f"{k}:{v}" for k, v in items) + "]"
    if isinstance(value, (set, frozenset)):
        return "[" + " ".join(sorted(canonicalize(v) for v in value)) + "]"
    if isinstance(value, (list, tuple)):
        return "[" + " ".join(canonicalize(v) for v in value) + "]"
    return str(value)


def retry_identifier(args: Sequence[Any]) -> str:
    """
    SHA-1 hex digest of the canonicalized, separator-joined arguments.

    Args:
        args: Ordered job arguments

    Returns:
        40-character lowercase hex string
    """
    joined = ARG_SEPARATOR.join(canonicalize(value) for value in args)
    return hashlib.sha1(joined.encode("utf-8")).hexdigest()


def retry_identity(job_name: str, args: Sequence[Any]) -> str:
    """Identity of one logical job invocation: ``<job_name>:<identifier>``."""
    return f"{job_name}:{retry_identifier(args)}"


def retry_key(job_name: str, args: Sequence[Any], prefix: str) -> str:
    """Namespaced counter key: ``<prefix>:<job_name>:<identifier>``."""
    return f"{prefix}:{retry_identity(job_name, args)}"
