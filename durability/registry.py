# SPDX-License-Identifier: Apache-2.0
"""
Process-local constraint registry.

Readers use the published snapshot without locking. Writers hold ``write_lock``
and publish a fresh read-only snapshot, so a reader sees either the registry
before a registration or after it, never a partial update.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from types import MappingProxyType
from typing import Iterable, Iterator, List, Mapping

from durability.constraint import Constraint
from durability.errors import MalformedPath
from durability.interfaces import ILogger, PathListing
from durability.paths import ClassifiedPath, PathLike, as_classified
from durability.tiers import DurabilityTier


class ConstraintRegistry:
    def __init__(self, logger: ILogger | None = None) -> None:
        self._entries: Mapping[str, Constraint] = MappingProxyType({})
        self._lock = threading.RLock()
        self._logger = logger
        self.generation = 0

    @contextmanager
    def write_lock(self) -> Iterator[None]:
        with self._lock:
            yield

    def snapshot(self) -> Mapping[str, Constraint]:
        return self._entries

    def _publish(self, entries: dict[str, Constraint]) -> None:
        self._entries = MappingProxyType(entries)
        self.generation += 1

    def bootstrap(self, constraints: Iterable[Constraint]) -> int:
        """Replace the whole registry, LAW entries included.

        This is the out-of-band load path used at session start; it bypasses
        the mutation gate.
        """
        entries = {item.path.as_posix(): item for item in constraints}
        with self._lock:
            self._publish(entries)
            generation = self.generation
        if self._logger is not None:
            tiers = [item.tier.label for item in entries.values()]
            self._logger.info(
                "registry_bootstrap",
                generation=generation,
                count=len(entries),
                law=tiers.count("law"),
                contract=tiers.count("contract"),
                implementation=tiers.count("implementation"),
            )
        return len(entries)

    def load(self, listing: PathListing) -> int:
        return self.bootstrap(listing.constraints())

    def commit(self, constraint: Constraint, *, retire: PathLike | None = None) -> None:
        """Insert or replace a non-LAW constraint.

        ``retire`` names the origin of a move: its entry is dropped in the same
        snapshot, so no reader sees the constraint claimed at both paths. A
        LAW entry is never retired.
        """
        if constraint.tier is DurabilityTier.LAW:
            raise PermissionError(f"law_constraints_are_bootstrap_only:{constraint.path}")
        key = constraint.path.as_posix()
        origin = as_classified(retire).as_posix() if retire is not None else None
        with self._lock:
            entries = dict(self._entries)
            retired = None
            if origin is not None and origin != key:
                current = entries.get(origin)
                if current is not None and current.tier is not DurabilityTier.LAW:
                    retired = entries.pop(origin)
            entries[key] = constraint
            self._publish(entries)
            generation = self.generation
        if self._logger is not None:
            self._logger.debug(
                "registry_commit",
                path=key,
                tier=constraint.tier.label,
                generation=generation,
                retired=retired.path.as_posix() if retired is not None else None,
            )

    def get(self, path: PathLike) -> Constraint | None:
        return self._entries.get(as_classified(path).as_posix())

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, ClassifiedPath)):
            return False
        try:
            return self.get(path) is not None
        except MalformedPath:
            return False

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Constraint]:
        return iter(list(self._entries.values()))

    def for_subject(self, subject: str) -> List[Constraint]:
        return [item for item in self._entries.values() if item.governs == subject]

    def law_above(self, path: PathLike) -> List[Constraint]:
        """LAW constraints whose directory is an ancestor of (or equal to) ``path``'s directory."""
        target = as_classified(path)
        return [
            item
            for item in self._entries.values()
            if item.tier is DurabilityTier.LAW and target.is_under(item.path.directory)
        ]


__all__ = ["ConstraintRegistry"]
