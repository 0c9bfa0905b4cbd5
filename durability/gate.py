# SPDX-License-Identifier: Apache-2.0
"""
Mutation gate: the public decision point for changes to instruction files.

Rules by target tier:

* LAW: every mutation kind is denied (``IMMUTABLE_LAW``). There is no override.
* CONTRACT: EDIT and DELETE need a mandate (``REQUIRES_MANDATE``). CREATE,
  EXTEND and mandated EDIT are checked against every LAW constraint registered
  above the target (``CONTRADICTS_LAW``).
* IMPLEMENTATION: permitted.

For any non-LAW target with a ``destination`` (rename or move), a destination
that resolves to LAW or CONTRACT and already holds a constraint for another
subject is refused.

A permitted CREATE, EXTEND or EDIT that carries content is committed to the
registry in the same exclusive section as the decision, and the verdict is
audited there too, so the log and journal follow the commit order. A moved
constraint keeps its origin subject and leaves its origin path.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from durability.config import GateConfig, load_config
from durability.conflict import resolve_conflict
from durability.constraint import Constraint
from durability.errors import DenyReason, MalformedPath
from durability.interfaces import ContentReviewer, ILogger, PermissiveReviewer
from durability.journal import VerdictJournal
from durability.logger import get_logger
from durability.paths import ClassifiedPath, PathLike, as_classified
from durability.registry import ConstraintRegistry
from durability.tiers import DurabilityTier


class MutationKind(Enum):
    EDIT = "edit"
    DELETE = "delete"
    CREATE = "create"
    EXTEND = "extend"

    @classmethod
    def from_label(cls, value: "str | MutationKind") -> "MutationKind":
        if isinstance(value, MutationKind):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise ValueError(f"unknown_mutation_kind:{value}") from exc


REGISTERING_KINDS = frozenset({MutationKind.CREATE, MutationKind.EXTEND, MutationKind.EDIT})


@dataclass(frozen=True)
class MutationRequest:
    target: ClassifiedPath
    kind: MutationKind
    mandate_present: bool = False
    content_ref: str | None = None
    subject: str | None = None
    destination: ClassifiedPath | None = None
    actor: str = "agent"

    @classmethod
    def build(
        cls,
        target: PathLike,
        kind: "str | MutationKind",
        *,
        mandate_present: bool = False,
        content_ref: str | None = None,
        subject: str | None = None,
        destination: PathLike | None = None,
        actor: str = "agent",
    ) -> "MutationRequest":
        return cls(
            target=as_classified(target),
            kind=MutationKind.from_label(kind),
            mandate_present=bool(mandate_present),
            content_ref=content_ref,
            subject=subject or None,
            destination=as_classified(destination) if destination is not None else None,
            actor=actor,
        )

    @property
    def resulting_path(self) -> ClassifiedPath:
        return self.destination or self.target

    @property
    def governs(self) -> str:
        """What the mutated file is about; a file keeps its origin path as subject when it moves."""
        return self.subject or self.target.as_posix()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target": self.target.as_posix(),
            "kind": self.kind.value,
            "mandate_present": self.mandate_present,
            "content_ref": self.content_ref,
            "subject": self.governs,
            "destination": self.destination.as_posix() if self.destination is not None else None,
            "actor": self.actor,
        }


@dataclass(frozen=True)
class Verdict:
    permitted: bool
    reason: DenyReason | None = None
    detail: str = ""
    tier: DurabilityTier | None = None

    @classmethod
    def permit(cls, tier: DurabilityTier, detail: str = "") -> "Verdict":
        return cls(permitted=True, tier=tier, detail=detail)

    @classmethod
    def deny(cls, reason: DenyReason, detail: str, tier: DurabilityTier | None = None) -> "Verdict":
        return cls(permitted=False, reason=reason, detail=detail, tier=tier)

    @property
    def outcome(self) -> str:
        return "permit" if self.permitted else "deny"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcome": self.outcome,
            "reason": self.reason.value if self.reason is not None else None,
            "detail": self.detail,
            "tier": self.tier.label if self.tier is not None else None,
        }


class MutationGate:
    def __init__(
        self,
        registry: ConstraintRegistry | None = None,
        *,
        reviewer: ContentReviewer | None = None,
        config: GateConfig | None = None,
        logger: ILogger | None = None,
        journal: VerdictJournal | None = None,
    ) -> None:
        self.config = config or load_config()
        self.logger = logger or get_logger("gate", log_file=self.config.log_dir / "gate.jsonl")
        self.registry = registry if registry is not None else ConstraintRegistry(logger=self.logger)
        self.reviewer: ContentReviewer = reviewer or PermissiveReviewer()
        if journal is None and self.config.journal_path is not None:
            journal = VerdictJournal(self.config.journal_path)
        self.journal = journal

    def check(self, request: MutationRequest) -> Verdict:
        """Decide ``request`` against the current registry snapshot without side effects."""
        tier = request.target.tier
        target = request.target.as_posix()

        if tier is DurabilityTier.LAW:
            return Verdict.deny(DenyReason.IMMUTABLE_LAW, f"law_path_is_immutable:{target}", tier)

        if tier is DurabilityTier.CONTRACT:
            if request.kind in (MutationKind.EDIT, MutationKind.DELETE) and not request.mandate_present:
                return Verdict.deny(
                    DenyReason.REQUIRES_MANDATE,
                    f"contract_{request.kind.value}_requires_mandate:{target}",
                    tier,
                )
            if request.kind is not MutationKind.DELETE:
                conflicting = self._contradicted_law(request)
                if conflicting is not None:
                    return Verdict.deny(
                        DenyReason.CONTRADICTS_LAW,
                        f"contradicts_law:{conflicting.path.as_posix()}",
                        tier,
                    )

        clash = self._destination_clash(request)
        if clash is not None:
            return clash
        return Verdict.permit(tier, detail=f"{request.kind.value}_permitted:{target}")

    def _contradicted_law(self, request: MutationRequest) -> Constraint | None:
        candidate = Constraint(path=request.target, content_ref=request.content_ref or "", subject=request.subject)
        laws = sorted(self.registry.law_above(request.target), key=lambda item: item.path.as_posix())
        for law in laws:
            if not self.reviewer.contradicts(request.content_ref, law):
                continue
            outcome = resolve_conflict([candidate, law])
            if outcome.winner is not candidate:
                return law
        return None

    def _destination_clash(self, request: MutationRequest) -> Verdict | None:
        destination = request.destination
        if destination is None or destination.tier is DurabilityTier.IMPLEMENTATION:
            return None
        existing = self.registry.get(destination)
        if existing is None or existing.governs == self._moving_subject(request):
            return None
        detail = f"destination_claimed:{destination.as_posix()}:{existing.governs}"
        if destination.tier is DurabilityTier.LAW:
            return Verdict.deny(DenyReason.IMMUTABLE_LAW, detail, request.target.tier)
        return Verdict.deny(DenyReason.IRRECONCILABLE, detail, request.target.tier)

    def _moving_subject(self, request: MutationRequest) -> str:
        if request.subject:
            return request.subject
        origin = self.registry.get(request.target)
        return origin.governs if origin is not None else request.governs

    def evaluate(self, request: MutationRequest) -> Verdict:
        """Decide ``request`` and, on a registering permit, commit it atomically."""
        with self.registry.write_lock():
            verdict = self.check(request)
            if verdict.permitted:
                self._commit(request)
            self._record(request, verdict)
        return verdict

    def _commit(self, request: MutationRequest) -> None:
        if request.kind not in REGISTERING_KINDS or request.content_ref is None:
            return
        moved = request.destination is not None and request.destination != request.target
        subject = self._moving_subject(request) if moved else request.subject
        constraint = Constraint(path=request.resulting_path, content_ref=request.content_ref, subject=subject)
        if constraint.tier is DurabilityTier.LAW:
            self.logger.info("law_registration_requires_bootstrap", path=constraint.path.as_posix())
            return
        self.registry.commit(constraint, retire=request.target if moved else None)

    def _record(self, request: MutationRequest, verdict: Verdict) -> None:
        details = {key: value for key, value in request.to_dict().items() if key != "actor"}
        details.update({key: value for key, value in verdict.to_dict().items() if key != "outcome"})
        generation = self.registry.generation
        self.logger.audit(
            "mutation_verdict", actor=request.actor, outcome=verdict.outcome, generation=generation, **details
        )
        if self.journal is not None:
            self.journal.append(
                "mutation_verdict",
                {"request": request.to_dict(), "verdict": verdict.to_dict(), "generation": generation},
            )

    def evaluate_mutation(
        self,
        target: PathLike,
        kind: "str | MutationKind",
        mandate_present: bool = False,
        **options: Any,
    ) -> Verdict:
        try:
            request = MutationRequest.build(target, kind, mandate_present=mandate_present, **options)
        except MalformedPath as exc:
            self.logger.info("mutation_rejected_malformed", target=str(target), error=str(exc))
            return Verdict.deny(DenyReason.MALFORMED_PATH, str(exc))
        return self.evaluate(request)

    def register(
        self,
        path: PathLike,
        content_ref: str,
        *,
        mandate_present: bool = False,
        subject: str | None = None,
        actor: str = "agent",
    ) -> Verdict:
        """Gate a (re-)registration of the constraint at ``path``.

        A new path is a CREATE. A known path is gated as the configured
        re-registration kind.
        """
        classified = as_classified(path)
        with self.registry.write_lock():
            kind = MutationKind.CREATE
            if self.registry.get(classified) is not None:
                kind = MutationKind.from_label(self.config.reregistration_kind)
            return self.evaluate(
                MutationRequest(
                    target=classified,
                    kind=kind,
                    mandate_present=mandate_present,
                    content_ref=content_ref,
                    subject=subject,
                    actor=actor,
                )
            )


_DEFAULT_GATE: Optional[MutationGate] = None


def default_gate() -> MutationGate:
    global _DEFAULT_GATE
    if _DEFAULT_GATE is None:
        _DEFAULT_GATE = MutationGate()
    return _DEFAULT_GATE


def evaluate_mutation(
    target: PathLike,
    kind: "str | MutationKind",
    mandate_present: bool = False,
    *,
    gate: MutationGate | None = None,
    **options: Any,
) -> Verdict:
    return (gate or default_gate()).evaluate_mutation(target, kind, mandate_present, **options)


__all__ = [
    "MutationKind",
    "MutationRequest",
    "Verdict",
    "MutationGate",
    "default_gate",
    "evaluate_mutation",
]
