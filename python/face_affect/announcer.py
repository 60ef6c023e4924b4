"""Announcer: turns detection results into short spoken-style text.

Text generation is a pure function (generate_announcement). The Announcer
class decides *when* to speak: state changes to mixed/low are announced
on their own, emotions on a fixed interval or only when the top emotion
changes, and repeats are suppressed. Actual speech output is left to
whatever callback is registered.
"""

from __future__ import annotations

import time
from collections import deque
from typing import Callable

from . import config
from .emotion_rules import describe_emotion
from .events import NEUTRAL, DetectionResult, DetectionState, ResultEmitter

VERBOSITIES = ("minimal", "normal", "detailed")
MODES = ("conversation", "sports")


def _strength_label(strength: float) -> str:
    if strength > 70:
        return "High"
    if strength > 40:
        return "Medium"
    return "Low"


def generate_announcement(
    result: DetectionResult,
    verbosity: str = "normal",
    mode: str = "conversation",
    expressions_first: bool = True,
    include_emotion: bool = False,
) -> str:
    """Build the text to speak for one result."""
    if verbosity not in VERBOSITIES:
        raise ValueError(f"Unknown verbosity {verbosity!r}")
    if mode not in MODES:
        raise ValueError(f"Unknown mode {mode!r}")

    if result.state == DetectionState.LOW:
        if verbosity == "minimal":
            return "Low visibility"
        return (
            "It looks like visibility is low right now. "
            "Try adjusting the lighting or facing the camera more directly."
        )

    top = result.expressions[:3]
    emotion = result.top_emotion
    emotion_name = emotion.name.lower()

    if mode == "sports":
        if result.state == DetectionState.MIXED:
            return "Mixed signals"
        if not top:
            return NEUTRAL
        return f"{top[0].name}. {_strength_label(top[0].strength)}."

    if result.state == DetectionState.MIXED:
        if verbosity == "minimal":
            return "I'm noticing some mixed signals"
        return (
            f"I'm picking up mixed signals: {result.state_reason}. "
            "That's completely normal, expressions can be complex."
        )

    if not top:
        if verbosity == "minimal":
            return NEUTRAL
        return "Things look calm and neutral right now, no strong signals to report."

    names = ", ".join(e.name.lower() for e in top)

    if expressions_first:
        if verbosity == "minimal":
            return top[0].name
        if verbosity == "normal":
            text = f"I'm noticing {names}."
            if include_emotion:
                text += f" This often goes with feeling {emotion_name}."
            return text
        details = ", ".join(f"{e.name.lower()} at {e.strength:.0f}%" for e in top)
        text = f"I can see {details}. {top[0].evidence}."
        if include_emotion:
            text += f" This pattern often suggests {emotion_name}, about {emotion.confidence:.0f}% likely."
        return text

    if not include_emotion:
        return top[0].name if verbosity == "minimal" else f"I'm noticing {names}."
    if verbosity == "minimal":
        return emotion.name
    if verbosity == "normal":
        return f"It looks like {emotion_name}. I'm seeing {top[0].name.lower()}."
    return (
        f"The overall feeling seems {emotion_name}, about {emotion.confidence:.0f}% confident. "
        f"{describe_emotion(emotion, top)}."
    )


class Announcer:
    """Decides when a result is worth announcing and emits the text.

    emotion_interval is in seconds; 0 means "only when the top emotion
    changes", None disables emotion announcements entirely.
    expressions_first puts what the face is doing ahead of the emotion label.
    """

    def __init__(
        self,
        speak: Callable[[str], None] | None = None,
        verbosity: str = config.ANNOUNCE_VERBOSITY,
        mode: str = config.ANNOUNCE_MODE,
        expressions_first: bool = config.ANNOUNCE_EXPRESSIONS_FIRST,
        emotion_interval: float | None = config.ANNOUNCE_EMOTION_INTERVAL,
        min_interval: float = config.ANNOUNCE_MIN_INTERVAL,
        state_interval: float = config.ANNOUNCE_STATE_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._speak = speak or self._print
        self._verbosity = verbosity
        self._mode = mode
        self._expressions_first = expressions_first
        self._emotion_interval = emotion_interval
        self._min_interval = min_interval
        self._state_interval = state_interval
        self._clock = clock
        self.history: deque[str] = deque(maxlen=10)
        self.reset()

    def reset(self) -> None:
        """Forget announcement timing (call on session start)."""
        self._last_text = ""
        self._last_time: float | None = None
        self._last_state_time: float | None = None
        self._last_emotion_time: float | None = None
        self._last_emotion: str | None = None
        self._last_state: DetectionState | None = None

    def attach(self, emitter: ResultEmitter) -> None:
        emitter.on_result(self.handle)

    @staticmethod
    def _print(text: str) -> None:
        print(f"[ANNOUNCE] {text}")

    @staticmethod
    def _elapsed(now: float, since: float | None) -> float:
        return float("inf") if since is None else now - since

    def _emotion_due(self, now: float, emotion: str) -> bool:
        if self._emotion_interval is None:
            return False
        if self._emotion_interval == 0:
            return emotion != self._last_emotion
        return self._elapsed(now, self._last_emotion_time) > self._emotion_interval

    def handle(self, result: DetectionResult) -> str | None:
        """Consider one result; returns the text announced, if any."""
        now = self._clock()
        emotion = result.top_emotion.name
        state = result.state

        if (
            state != DetectionState.CLEAR
            and state != self._last_state
            and self._elapsed(now, self._last_state_time) > self._state_interval
        ):
            text = "Low visibility" if state == DetectionState.LOW else "Mixed signals"
            if self._say(text, now):
                self._last_state_time = now
                self._last_state = state
                return text
            return None

        if self._emotion_due(now, emotion):
            text = generate_announcement(
                result,
                verbosity=self._verbosity,
                mode=self._mode,
                expressions_first=self._expressions_first,
                include_emotion=True,
            )
            if self._say(text, now):
                self._last_emotion_time = now
                self._last_emotion = emotion
                self._last_state = state
                return text
        return None

    def _say(self, text: str, now: float) -> bool:
        since_last = self._elapsed(now, self._last_time)
        if text == self._last_text and since_last < self._min_interval * 2:
            return False
        if since_last < self._min_interval:
            return False
        self._speak(text)
        self.history.append(text)
        self._last_text = text
        self._last_time = now
        return True
