# SPDX-License-Identifier: Apache-2.0
"""
Immutable instruction unit anchored to the classified path of its file.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from durability.paths import ClassifiedPath, PathLike, as_classified
from durability.tiers import DurabilityTier


@dataclass(frozen=True)
class Constraint:
    path: ClassifiedPath
    content_ref: str
    subject: str | None = None

    @classmethod
    def at(cls, path: PathLike, content_ref: str, subject: str | None = None) -> "Constraint":
        return cls(path=as_classified(path), content_ref=str(content_ref), subject=subject or None)

    @property
    def tier(self) -> DurabilityTier:
        return self.path.tier

    @property
    def governs(self) -> str:
        return self.subject or self.path.as_posix()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path.as_posix(),
            "content_ref": self.content_ref,
            "subject": self.governs,
            "tier": self.tier.label,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Constraint":
        return cls.at(
            raw.get("path", ""),
            content_ref=str(raw.get("content_ref") or ""),
            subject=raw.get("subject") or None,
        )


__all__ = ["Constraint"]
