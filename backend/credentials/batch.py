"""Accumulator for best-effort batch operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

from .exceptions import CredentialError

__all__ = ["BatchResult", "Skip", "run_batch"]


class Skip(Exception):
    """Raised by a per-item step to report the item as skipped, not failed."""

    def __init__(self, reason: str, value: Any = None):
        super().__init__(reason)
        self.reason = reason
        self.value = value


@dataclass
class BatchResult:
    succeeded: List[Dict[str, Any]] = field(default_factory=list)
    skipped: List[Dict[str, Any]] = field(default_factory=list)
    failed: List[Dict[str, Any]] = field(default_factory=list)

    def add_success(self, item_id, value: Any = None) -> None:
        entry = {"id": item_id}
        if value is not None:
            entry["value"] = value
        self.succeeded.append(entry)

    def add_skip(self, item_id, reason: str, value: Any = None) -> None:
        entry = {"id": item_id, "reason": reason}
        if value is not None:
            entry["value"] = value
        self.skipped.append(entry)

    def add_failure(self, item_id, error: CredentialError) -> None:
        self.failed.append({"id": item_id, "code": error.code, "reason": error.message})

    @property
    def counts(self) -> Dict[str, int]:
        return {
            "succeeded": len(self.succeeded),
            "skipped": len(self.skipped),
            "failed": len(self.failed),
        }

    def as_dict(self) -> Dict[str, Any]:
        return {
            "succeeded": list(self.succeeded),
            "skipped": list(self.skipped),
            "failed": list(self.failed),
            "counts": self.counts,
        }


def run_batch(
    item_ids: Iterable,
    step: Callable[[Any], Any],
    *,
    on_failure: Optional[Callable[[Any, CredentialError], None]] = None,
) -> BatchResult:
    """Fold ``step`` over ``item_ids``.

    ``step`` returns the success value, raises ``Skip`` to skip the item or a
    ``CredentialError`` to fail it. Anything else propagates.
    """
    result = BatchResult()
    seen = set()
    for item_id in item_ids:
        if item_id in seen:
            continue
        seen.add(item_id)
        try:
            value = step(item_id)
        except Skip as skip:
            result.add_skip(item_id, skip.reason, skip.value)
        except CredentialError as exc:
            if on_failure is not None:
                on_failure(item_id, exc)
            result.add_failure(item_id, exc)
        else:
            result.add_success(item_id, value)
    return result
