# SPDX-License-Identifier: Apache-2.0
"""Durability gate HTTP server."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import FastAPI

from durability import __version__
from durability.api import router as durability_router
from durability.config import load_config
from durability.gate import MutationGate
from durability.interfaces import JsonPathListing

GATE_PROTOCOL = "durability-gate/1.0"

app = FastAPI(title="Durability Gate", version=__version__)
app.include_router(durability_router)


@app.on_event("startup")
def _startup() -> None:
    config = load_config()
    gate = MutationGate(config=config)
    if config.path_listing is not None:
        gate.registry.load(JsonPathListing(config.path_listing))
    app.state.gate = gate


@app.get("/api/health")
def health() -> Dict[str, Any]:
    gate = getattr(app.state, "gate", None)
    return {
        "ok": gate is not None,
        "protocol": GATE_PROTOCOL,
        "registered": len(gate.registry) if gate is not None else 0,
        "checked_at": datetime.now(timezone.utc).isoformat(),
    }
