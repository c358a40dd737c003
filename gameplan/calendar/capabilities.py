"""Capability set value object for module-gated plan items."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class CapabilitySet:
    """Modules a user holds, queried through a single predicate.

    Module strings are stored as purchased ("baseball_hitting",
    "softball_pitching"); a module grants every capability whose name it
    contains, so "baseball_hitting" grants "hitting".
    """

    modules: frozenset[str] = frozenset()

    @classmethod
    def of(cls, modules: Iterable[str]) -> CapabilitySet:
        return cls(frozenset(m.strip().lower() for m in modules if m and m.strip()))

    def has(self, capability: str | None) -> bool:
        """Whether the user holds `capability`. A missing gate is always satisfied."""
        if not capability:
            return True
        wanted = capability.lower()
        return any(wanted in module for module in self.modules)

    def has_any(self) -> bool:
        return bool(self.modules)

    def __len__(self) -> int:
        return len(self.modules)
