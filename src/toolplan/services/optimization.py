"""API-affinity optimization policies for parallel execution groups.

Tools in the same level that call the same downstream resource (same
affinity key) may need to be invoked one after another, e.g. to respect a
shared rate limit. A policy decides how that preference is expressed.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Protocol

from toolplan.enums import AffinityPolicyName

AffinityLookup = Callable[[str], str | None]
AffinityAnnotation = dict[str, tuple[str, ...]]


@dataclass(frozen=True)
class OptimizedGroups:
    """Result of an optimization pass: groups plus one annotation per group."""

    groups: tuple[frozenset[str], ...]
    annotations: tuple[AffinityAnnotation, ...]


class AffinityPolicy(Protocol):
    name: AffinityPolicyName

    def apply(
        self, groups: Sequence[frozenset[str]], affinity_of: AffinityLookup
    ) -> OptimizedGroups: ...


def _bucket(group: frozenset[str], affinity_of: AffinityLookup) -> tuple[
    dict[str, list[str]], list[str]
]:
    by_key: dict[str, list[str]] = defaultdict(list)
    unkeyed: list[str] = []
    for tool_id in sorted(group):
        key = affinity_of(tool_id)
        if key is None:
            unkeyed.append(tool_id)
        else:
            by_key[key].append(tool_id)
    return dict(sorted(by_key.items())), unkeyed


class AnnotateOnlyPolicy:
    """Leave groups untouched and annotate shared-endpoint sub-sequences.

    For each group, every affinity key shared by at least two of its tools
    maps to those tools in ascending id order. Tools with distinct keys or
    no key stay free to run concurrently.
    """

    name = AffinityPolicyName.ANNOTATE

    def apply(
        self, groups: Sequence[frozenset[str]], affinity_of: AffinityLookup
    ) -> OptimizedGroups:
        annotations: list[AffinityAnnotation] = []
        for group in groups:
            by_key, _ = _bucket(group, affinity_of)
            annotations.append(
                {key: tuple(tools) for key, tools in by_key.items() if len(tools) > 1}
            )
        return OptimizedGroups(groups=tuple(groups), annotations=tuple(annotations))


class SplitByAffinityPolicy:
    """Split each level into one sub-group per affinity key.

    Sub-groups follow ascending key order, then one group for tools without
    a key. Prerequisites still precede dependents, but tools may run later
    than their earliest possible level.
    """

    name = AffinityPolicyName.SPLIT

    def apply(
        self, groups: Sequence[frozenset[str]], affinity_of: AffinityLookup
    ) -> OptimizedGroups:
        split: list[frozenset[str]] = []
        annotations: list[AffinityAnnotation] = []
        for group in groups:
            by_key, unkeyed = _bucket(group, affinity_of)
            for key, tools in by_key.items():
                split.append(frozenset(tools))
                annotations.append({key: tuple(tools)} if len(tools) > 1 else {})
            if unkeyed:
                split.append(frozenset(unkeyed))
                annotations.append({})
        return OptimizedGroups(groups=tuple(split), annotations=tuple(annotations))


POLICIES: dict[AffinityPolicyName, Callable[[], AffinityPolicy]] = {
    AffinityPolicyName.ANNOTATE: AnnotateOnlyPolicy,
    AffinityPolicyName.SPLIT: SplitByAffinityPolicy,
}


def policy_for(name: AffinityPolicyName | str) -> AffinityPolicy:
    """Instantiate the registered policy called ``name``."""
    return POLICIES[AffinityPolicyName(name)]()


__all__ = [
    "AffinityAnnotation",
    "AffinityLookup",
    "AffinityPolicy",
    "AnnotateOnlyPolicy",
    "OptimizedGroups",
    "POLICIES",
    "SplitByAffinityPolicy",
    "policy_for",
]
