# SPDX-License-Identifier: Apache-2.0
"""HTTP routes exposing classification, conflict resolution and the mutation gate."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from pydantic import BaseModel, Field

from durability.conflict import resolve_conflict
from durability.constraint import Constraint
from durability.errors import DenyReason, MalformedPath
from durability.gate import MutationGate, MutationRequest
from durability.paths import as_classified
from durability.tiers import classify_segment

router = APIRouter(prefix="/api/durability")


class ClassifyBody(BaseModel):
    segment: str


class ResolveBody(BaseModel):
    segments: Optional[List[str]] = None
    path: Optional[str] = None


class ConstraintBody(BaseModel):
    path: str
    content_ref: str = ""
    subject: Optional[str] = None


class ConflictBody(BaseModel):
    constraints: List[ConstraintBody] = Field(min_length=1)


class MutationBody(BaseModel):
    target: str
    kind: Literal["edit", "delete", "create", "extend"]
    content_ref: Optional[str] = None
    subject: Optional[str] = None
    destination: Optional[str] = None
    actor: str = "agent"


def get_gate(request: Request) -> MutationGate:
    gate = getattr(request.app.state, "gate", None)
    if gate is None:
        raise HTTPException(status_code=503, detail="gate_not_ready")
    return gate


def _bearer(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _malformed(exc: MalformedPath) -> HTTPException:
    return HTTPException(status_code=422, detail={"reason": DenyReason.MALFORMED_PATH.value, "error": str(exc)})


@router.post("/classify")
def classify(body: ClassifyBody) -> Dict[str, Any]:
    return {"segment": body.segment, "tier": classify_segment(body.segment).label}


@router.post("/resolve")
def resolve(body: ResolveBody) -> Dict[str, Any]:
    raw: Any = body.segments if body.segments is not None else (body.path or "")
    try:
        path = as_classified(raw)
    except MalformedPath as exc:
        raise _malformed(exc) from exc
    return {
        "path": path.as_posix(),
        "tier": path.tier.label,
        "segments": [{"text": seg.text, "tier": seg.tier.label} for seg in path.segments],
    }


@router.post("/conflicts")
def conflicts(body: ConflictBody) -> Dict[str, Any]:
    try:
        constraints = [Constraint.at(item.path, item.content_ref, item.subject) for item in body.constraints]
    except MalformedPath as exc:
        raise _malformed(exc) from exc
    outcome = resolve_conflict(constraints)
    if outcome.irreconcilable:
        raise HTTPException(status_code=409, detail={"reason": DenyReason.IRRECONCILABLE.value, **outcome.to_dict()})
    return outcome.to_dict()


@router.post("/mutations")
def mutate(
    body: MutationBody,
    gate: MutationGate = Depends(get_gate),
    authorization: str | None = Header(default=None),
) -> Dict[str, Any]:
    mandate_present = gate.config.grants_mandate(_bearer(authorization))
    try:
        request = MutationRequest.build(
            body.target,
            body.kind,
            mandate_present=mandate_present,
            content_ref=body.content_ref,
            subject=body.subject,
            destination=body.destination,
            actor=body.actor,
        )
    except MalformedPath as exc:
        raise _malformed(exc) from exc
    verdict = gate.evaluate(request)
    if not verdict.permitted:
        raise HTTPException(status_code=403, detail={"status": "DENIED", **verdict.to_dict()})
    return {"status": "PERMITTED", **verdict.to_dict()}


@router.get("/registry")
def registry_snapshot(gate: MutationGate = Depends(get_gate)) -> Dict[str, Any]:
    entries = sorted((item.to_dict() for item in gate.registry), key=lambda item: item["path"])
    return {"count": len(entries), "generation": gate.registry.generation, "constraints": entries}


__all__ = ["router", "get_gate"]
