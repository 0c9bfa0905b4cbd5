# SPDX-License-Identifier: Apache-2.0
"""Capability interfaces supplied by the hosting system."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterator, Protocol

from durability.constraint import Constraint
from durability.errors import ConfigError


class ILogger(ABC):
    """Logger contract used by the gate and registry."""

    @abstractmethod
    def info(self, msg: str, **kwargs: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    def debug(self, msg: str, **kwargs: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    def audit(self, action: str, actor: str, outcome: str, **details: Any) -> None:
        """Record a governance decision."""
        raise NotImplementedError


class ContentReviewer(Protocol):
    """Decides whether new content narrows or contradicts a LAW constraint."""

    def contradicts(self, candidate_ref: str | None, law: Constraint) -> bool: ...


class PermissiveReviewer:
    """Default reviewer: semantic comparison is out of scope, so nothing contradicts."""

    def contradicts(self, candidate_ref: str | None, law: Constraint) -> bool:
        return False


class PathListing(Protocol):
    """Supplies the constraints to register at startup."""

    def constraints(self) -> Iterator[Constraint]: ...


class StaticPathListing:
    def __init__(self, records: list[dict[str, Any]]) -> None:
        self._records = list(records)

    def constraints(self) -> Iterator[Constraint]:
        for raw in self._records:
            if isinstance(raw, str):
                yield Constraint.at(raw, content_ref="")
            else:
                yield Constraint.from_dict(raw)


class JsonPathListing(StaticPathListing):
    """Reads ``[{"path": ..., "content_ref": ..., "subject": ...}, ...]`` from disk."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigError(f"path_listing_unreadable:{self.path}:{exc}") from exc
        records = raw.get("constraints") if isinstance(raw, dict) else raw
        if not isinstance(records, list):
            raise ConfigError(f"path_listing_not_a_list:{self.path}")
        super().__init__(records)


__all__ = [
    "ILogger",
    "ContentReviewer",
    "PermissiveReviewer",
    "PathListing",
    "StaticPathListing",
    "JsonPathListing",
]
