"""Versioned store of execution plans keyed by request signature.

Plans are deep-copied on the way in and on the way out, so editing a
returned plan never reaches the stored history. Each signature owns its
own lock, so publishing for one tool set never waits on another. A
registry lock is held only while creating the per-signature entry.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
import threading

from toolplan.constants import FIRST_PLAN_VERSION
from toolplan.errors import VersionNotFoundError
from toolplan.schema.plan import ExecutionPlan, RequestSignature


@dataclass
class _SignatureHistory:
    lock: threading.Lock = field(default_factory=threading.Lock)
    plans: dict[int, ExecutionPlan] = field(default_factory=dict)
    last_version: int = FIRST_PLAN_VERSION - 1


class PlanVersionStore:
    """Append-only history of plan snapshots per request signature.

    Args:
        max_versions: Optional retention per signature. ``None`` keeps every
            version for the lifetime of the store; a positive value evicts
            the oldest snapshots beyond it. Version numbers are never reused
            either way.
    """

    def __init__(self, max_versions: int | None = None) -> None:
        if max_versions is not None and max_versions < 1:
            raise ValueError("max_versions must be positive or None")
        self.max_versions = max_versions
        self._registry_lock = threading.Lock()
        self._histories: dict[RequestSignature, _SignatureHistory] = {}

    def _history(self, signature: RequestSignature) -> _SignatureHistory:
        history = self._histories.get(signature)
        if history is not None:
            return history
        with self._registry_lock:
            return self._histories.setdefault(signature, _SignatureHistory())

    def publish(self, draft: ExecutionPlan) -> ExecutionPlan:
        """Assign the next version to ``draft`` and append it atomically."""
        history = self._history(draft.signature)
        with history.lock:
            version = history.last_version + 1
            plan = draft.with_version(version)
            history.plans[version] = plan.model_copy(deep=True)
            history.last_version = version
            if self.max_versions is not None:
                while len(history.plans) > self.max_versions:
                    del history.plans[min(history.plans)]
        return plan

    def get(self, signature: RequestSignature, version: int) -> ExecutionPlan:
        history = self._histories.get(signature)
        if history is not None:
            with history.lock:
                plan = history.plans.get(version)
            if plan is not None:
                return plan.model_copy(deep=True)
        raise VersionNotFoundError(signature, version)

    def versions(self, signature: RequestSignature) -> dict[int, ExecutionPlan]:
        """Copy of every retained version for ``signature``, oldest first."""
        history = self._histories.get(signature)
        if history is None:
            return {}
        with history.lock:
            return {
                version: plan.model_copy(deep=True)
                for version, plan in sorted(history.plans.items())
            }

    def latest(self, signature: RequestSignature) -> ExecutionPlan | None:
        history = self._histories.get(signature)
        if history is None:
            return None
        with history.lock:
            plan = history.plans.get(history.last_version)
        return None if plan is None else plan.model_copy(deep=True)

    def signatures(self) -> list[RequestSignature]:
        with self._registry_lock:
            return sorted(self._histories)

    def evict(self, signatures: Iterable[RequestSignature] | None = None) -> None:
        """Drop retained snapshots; version counters survive eviction."""
        targets = self.signatures() if signatures is None else list(signatures)
        for signature in targets:
            history = self._histories.get(signature)
            if history is None:
                continue
            with history.lock:
                history.plans.clear()


__all__ = ["PlanVersionStore"]
