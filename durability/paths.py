# SPDX-License-Identifier: Apache-2.0
"""
Path durability resolver.

A path is as durable as its most durable segment: one LAW segment anywhere,
including the file name of a deeply nested file, makes the whole path LAW.
Between two paths of equal tier, the one whose directory sits strictly deeper
under the other's directory is the nearer ancestor of the subject and prevails.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Sequence, Union

from durability.errors import MalformedPath
from durability.tiers import DurabilityTier, classify_segment

_SEPARATORS = re.compile(r"[\\/]+")

PathLike = Union[str, Sequence[str], "ClassifiedPath"]


@dataclass(frozen=True)
class PathSegment:
    text: str
    tier: DurabilityTier

    @classmethod
    def of(cls, text: str) -> "PathSegment":
        return cls(text=text, tier=classify_segment(text))


@dataclass(frozen=True)
class ClassifiedPath:
    segments: tuple[PathSegment, ...]

    def __post_init__(self) -> None:
        if not self.segments:
            raise MalformedPath("malformed_path:no_segments")

    @classmethod
    def from_segments(cls, parts: Iterable[str]) -> "ClassifiedPath":
        cleaned: list[str] = []
        for raw in parts:
            part = str(raw).strip()
            if part in {"", "."}:
                continue
            if part == "..":
                raise MalformedPath("malformed_path:parent_traversal")
            cleaned.append(part)
        return cls(segments=tuple(PathSegment.of(part) for part in cleaned))

    @classmethod
    def parse(cls, text: str) -> "ClassifiedPath":
        return cls.from_segments(_SEPARATORS.split(str(text)))

    @property
    def tier(self) -> DurabilityTier:
        return max(segment.tier for segment in self.segments)

    @property
    def parts(self) -> tuple[str, ...]:
        return tuple(segment.text for segment in self.segments)

    @property
    def directory(self) -> tuple[str, ...]:
        return self.parts[:-1]

    @property
    def name(self) -> str:
        return self.segments[-1].text

    def as_posix(self) -> str:
        return "/".join(self.parts)

    def is_under(self, directory: Sequence[str]) -> bool:
        """True when ``directory`` is a (possibly empty) prefix of this path's directory."""
        prefix = tuple(directory)
        return self.directory[: len(prefix)] == prefix

    def __str__(self) -> str:
        return self.as_posix()


def as_classified(path: PathLike) -> ClassifiedPath:
    if isinstance(path, ClassifiedPath):
        return path
    if isinstance(path, str):
        return ClassifiedPath.parse(path)
    return ClassifiedPath.from_segments(path)


def resolve_path(path: PathLike) -> DurabilityTier:
    """Return the durability tier of ``path``; raises ``MalformedPath`` on empty input."""
    return as_classified(path).tier


def strictly_extends(deeper: ClassifiedPath, shallower: ClassifiedPath) -> bool:
    return len(deeper.directory) > len(shallower.directory) and deeper.is_under(shallower.directory)


def compare_authority(left: PathLike, right: PathLike) -> ClassifiedPath | None:
    """Return the prevailing path, or ``None`` when neither can be preferred.

    Higher tier prevails outright. At equal tier the nearer ancestor wins,
    meaning the path whose directory strictly extends the other's directory.
    """
    a = as_classified(left)
    b = as_classified(right)
    if a.tier != b.tier:
        return a if a.tier > b.tier else b
    if strictly_extends(a, b):
        return a
    if strictly_extends(b, a):
        return b
    return None


__all__ = [
    "PathSegment",
    "ClassifiedPath",
    "PathLike",
    "as_classified",
    "resolve_path",
    "strictly_extends",
    "compare_authority",
]
