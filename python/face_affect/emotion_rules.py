"""Map raw expressions to coarse emotions: Happy, Sad, Surprised (or Neutral).

Each emotion is a weighted sum of expression strengths. Sadness is given
priority: active sadness indicators attenuate a weak or moderate smile's
Happy score, and several converging indicators boost Sad.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Sequence

from .events import NEUTRAL, Emotion, Expression
from .tuning import DEFAULT_TUNING, EmotionTuning, Tuning


def _weighted(strengths: Mapping[str, float], weights: Mapping[str, float]) -> float:
    return sum(strengths.get(key, 0.0) * w for key, w in weights.items())


def count_sad_indicators(strengths: Mapping[str, float], tuning: EmotionTuning) -> int:
    """Number of sadness-indicator expressions above the activity floor."""
    return sum(
        1 for key in tuning.sad_indicators
        if strengths.get(key, 0.0) > tuning.indicator_min_strength
    )


def score_emotions(strengths: Mapping[str, float], tuning: EmotionTuning) -> dict[str, float]:
    """Unfiltered Happy/Sad/Surprised scores for one frame."""
    happy = _weighted(strengths, tuning.happy_weights)
    surprised = _weighted(strengths, tuning.surprised_weights)
    sad = _weighted(strengths, tuning.sad_weights)

    active_sad = count_sad_indicators(strengths, tuning)
    smile = strengths.get("smile", 0.0)

    # Suppress happy when sadness signals accompany a weak/moderate smile
    if active_sad >= tuning.suppress_min_indicators and smile < tuning.suppress_smile_ceiling:
        happy *= max(tuning.suppress_floor, 1 - active_sad * tuning.suppress_step)
    elif active_sad >= tuning.weak_smile_min_indicators and smile < tuning.weak_smile_ceiling:
        happy *= tuning.weak_smile_factor

    if active_sad >= tuning.sad_boost_min_indicators:
        sad = min(100.0, sad * tuning.sad_boost_factor)

    return {"Happy": happy, "Sad": sad, "Surprised": surprised}


def map_emotions(
    expressions: Iterable[Expression],
    tuning: Tuning = DEFAULT_TUNING,
) -> tuple[Emotion, ...]:
    """Top emotions (at most max_emotions), never empty."""
    t = tuning.emotion
    strengths: dict[str, float] = {}
    for e in expressions:
        strengths[e.key] = max(strengths.get(e.key, 0.0), e.strength)

    scores = score_emotions(strengths, t)
    detected = sorted(
        ((name, score) for name, score in scores.items() if score >= t.min_confidence),
        key=lambda item: item[1],
        reverse=True,
    )

    if not detected:
        return (Emotion(NEUTRAL, round(t.neutral_confidence)),)

    return tuple(
        Emotion(name, min(100, max(0, round(score))))
        for name, score in detected[: t.max_emotions]
    )


def describe_emotion(emotion: Emotion, expressions: Sequence[Expression]) -> str:
    """One-sentence explanation of why an emotion was suggested."""
    top = ", ".join(e.name.lower() for e in expressions[:3]) or "no strong expressions"
    name = emotion.name.lower()
    if name == "happy":
        return f"Based on {top}, suggests a positive emotional state"
    if name == "surprised":
        return f"Open features ({top}) indicate surprise or interest"
    if name == "sad":
        return "Facial tension and brow position suggest sadness or emotional distress"
    if name == "neutral":
        return "Relaxed features with no strong emotional signals"
    return f"Expression pattern suggests {name}"
