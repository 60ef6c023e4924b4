"""Conflicting-expression rules that mark a frame as "mixed".

Each rule takes the strengths of the expressions that passed the
participation threshold (key -> strength) and returns a reason string when
it matches. Rules are checked in priority order; the first match wins.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping

from .events import Expression
from .tuning import DEFAULT_TUNING, Tuning


def _whole(strength: float) -> int:
    """Round half up, so 40.5 reads as 41."""
    return math.floor(strength + 0.5)


@dataclass(frozen=True)
class ConflictResult:
    is_conflicting: bool = False
    reason: str = ""


def polite_smile(s: Mapping[str, float]) -> str | None:
    """Smile + brow furrow: a polite or nervous smile."""
    if "smile" in s and "brow_furrow" in s:
        return (
            f"Smile ({_whole(s['smile'])}) + Brow furrow ({_whole(s['brow_furrow'])}), "
            "could be a polite or nervous smile"
        )
    return None


def suppressed_emotion(s: Mapping[str, float]) -> str | None:
    """Smile + lip press: an emotion being held back."""
    if "smile" in s and "lip_press" in s:
        return (
            f"Smile ({_whole(s['smile'])}) + Lip press ({_whole(s['lip_press'])}), "
            "may be suppressing emotion"
        )
    return None


def skepticism(s: Mapping[str, float]) -> str | None:
    """Squint + lip press + brow raise: sarcasm or skepticism."""
    if "squint" in s and "lip_press" in s and "brow_raise" in s:
        return (
            f"Squint ({_whole(s['squint'])}) + Lip press ({_whole(s['lip_press'])}) + "
            f"Brow raise ({_whole(s['brow_raise'])}), possible sarcasm or skepticism"
        )
    return None


def mixed_mouth(s: Mapping[str, float]) -> str | None:
    """Smile + frown at the same time."""
    if "smile" in s and "frown" in s:
        return (
            f"Mixed mouth signals, smile ({_whole(s['smile'])}) "
            f"and frown ({_whole(s['frown'])}) detected"
        )
    return None


# Priority-ordered list of conflict checks
CONFLICT_RULES: tuple[tuple[str, Callable[[Mapping[str, float]], str | None]], ...] = (
    ("polite_smile", polite_smile),
    ("suppressed_emotion", suppressed_emotion),
    ("skepticism", skepticism),
    ("mixed_mouth", mixed_mouth),
)


def detect_conflict(
    expressions: Iterable[Expression],
    tuning: Tuning = DEFAULT_TUNING,
) -> ConflictResult:
    """Return the first matching conflict among strongly expressed signals."""
    strong = {
        e.key: e.strength
        for e in expressions
        if e.strength > tuning.conflict.min_strength
    }
    for _name, check_fn in CONFLICT_RULES:
        reason = check_fn(strong)
        if reason:
            return ConflictResult(is_conflicting=True, reason=reason)
    return ConflictResult()
