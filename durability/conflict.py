# SPDX-License-Identifier: Apache-2.0
"""
Conflict resolver for constraints that claim the same subject.

Protocol:
1. tier every constraint by its path;
2. keep only the constraints at the highest tier present;
3. a single survivor wins;
4. among several survivors, the one whose directory strictly extends the
   directory of every other survivor (the nearest ancestor) wins;
5. anything else is irreconcilable and is reported, never guessed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from durability.constraint import Constraint
from durability.errors import IrreconcilableConflict
from durability.paths import strictly_extends
from durability.tiers import DurabilityTier


@dataclass(frozen=True)
class ConflictOutcome:
    winner: Constraint | None
    tier: DurabilityTier
    contenders: tuple[Constraint, ...] = field(default_factory=tuple)

    @property
    def irreconcilable(self) -> bool:
        return self.winner is None

    def to_dict(self) -> dict:
        return {
            "outcome": "irreconcilable" if self.irreconcilable else "winner",
            "tier": self.tier.label,
            "winner": self.winner.to_dict() if self.winner is not None else None,
            "contenders": [item.to_dict() for item in self.contenders],
        }


def _unique(constraints: Iterable[Constraint]) -> list[Constraint]:
    seen: list[Constraint] = []
    for item in constraints:
        if item not in seen:
            seen.append(item)
    return seen


def resolve_conflict(constraints: Iterable[Constraint]) -> ConflictOutcome:
    candidates = _unique(constraints)
    if not candidates:
        raise ValueError("resolve_conflict requires at least one constraint")

    top_tier = max(item.tier for item in candidates)
    contenders = tuple(item for item in candidates if item.tier == top_tier)
    if len(contenders) == 1:
        return ConflictOutcome(winner=contenders[0], tier=top_tier, contenders=contenders)

    for candidate in contenders:
        others = [other for other in contenders if other is not candidate]
        if all(strictly_extends(candidate.path, other.path) for other in others):
            return ConflictOutcome(winner=candidate, tier=top_tier, contenders=contenders)
    return ConflictOutcome(winner=None, tier=top_tier, contenders=contenders)


def resolve_conflict_strict(constraints: Iterable[Constraint]) -> Constraint:
    """Like :func:`resolve_conflict` but raises on an irreconcilable outcome."""
    outcome = resolve_conflict(constraints)
    if outcome.winner is None:
        paths = tuple(item.path.as_posix() for item in outcome.contenders)
        raise IrreconcilableConflict(f"irreconcilable:{','.join(paths)}", paths=paths)
    return outcome.winner


__all__ = ["ConflictOutcome", "resolve_conflict", "resolve_conflict_strict"]
