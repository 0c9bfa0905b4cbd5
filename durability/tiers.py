# SPDX-License-Identifier: Apache-2.0
"""
Segment classifier: maps one path segment to a durability tier.

Classification looks only at letter casing of the segment stem. The stem is the
segment cut at its first dot after the leading character, so ``AGENT.md`` is
read as ``AGENT`` while a dotfile such as ``.github`` keeps its leading dot and
never starts with an uppercase letter.
"""

from __future__ import annotations

from enum import IntEnum


class DurabilityTier(IntEnum):
    """Authority tiers, ordered lowest to highest so ``max()`` picks the strongest."""

    IMPLEMENTATION = 0
    CONTRACT = 1
    LAW = 2

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def from_label(cls, value: str) -> "DurabilityTier":
        try:
            return cls[str(value).strip().upper()]
        except KeyError as exc:
            raise ValueError(f"unknown_durability_tier:{value}") from exc


def segment_stem(text: str) -> str:
    cut = text.find(".", 1)
    return text if cut == -1 else text[:cut]


def classify_segment(text: str) -> DurabilityTier:
    stem = segment_stem(str(text))
    letters = [ch for ch in stem if ch.isalpha()]
    if not letters:
        return DurabilityTier.IMPLEMENTATION
    if all(ch.isupper() for ch in letters):
        return DurabilityTier.LAW
    if stem[0].isupper() and any(ch.islower() for ch in letters):
        return DurabilityTier.CONTRACT
    return DurabilityTier.IMPLEMENTATION


__all__ = ["DurabilityTier", "classify_segment", "segment_stem"]
