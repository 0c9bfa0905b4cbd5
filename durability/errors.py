# SPDX-License-Identifier: Apache-2.0
"""Closed error and denial taxonomy for durability governance."""

from __future__ import annotations

from enum import Enum


class DenyReason(Enum):
    """Every reason a mutation or resolution can be refused."""

    MALFORMED_PATH = "malformed_path"
    IMMUTABLE_LAW = "immutable_law"
    REQUIRES_MANDATE = "requires_mandate"
    CONTRADICTS_LAW = "contradicts_law"
    IRRECONCILABLE = "irreconcilable"


class DurabilityError(ValueError):
    """Base class for durability governance failures."""

    reason: DenyReason | None = None


class MalformedPath(DurabilityError):
    """Raised when a path cannot be classified (no segments, parent traversal)."""

    reason = DenyReason.MALFORMED_PATH


class IrreconcilableConflict(DurabilityError):
    """Raised when same-tier constraints without an ancestor relationship collide."""

    reason = DenyReason.IRRECONCILABLE

    def __init__(self, message: str, *, paths: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.paths = paths


class ConfigError(DurabilityError):
    """Raised when the durability policy document or environment is invalid."""


__all__ = ["DenyReason", "DurabilityError", "MalformedPath", "IrreconcilableConflict", "ConfigError"]
