from __future__ import annotations

from enum import Enum

RGB = tuple[int, int, int]

GREEN: RGB = (16, 185, 129)
CYAN: RGB = (6, 182, 212)
AMBER: RGB = (245, 158, 11)
RED: RGB = (239, 68, 68)
GRAY: RGB = (107, 114, 128)

WHITE: RGB = (255, 255, 255)
INK: RGB = (30, 30, 30)
MUTED: RGB = (120, 120, 120)
CARD_BG: RGB = (248, 249, 250)
TRACK: RGB = (230, 230, 230)
PASS_BG: RGB = (236, 253, 243)
FAIL_BG: RGB = (254, 242, 242)
OPPORTUNITY_BG: RGB = (255, 250, 235)
RULE: RGB = (220, 220, 220)


class ScoreTier(str, Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    NEEDS_IMPROVEMENT = "Needs Improvement"
    POOR = "Poor"


# Inclusive lower bounds, checked top-down.
TIER_THRESHOLDS: list[tuple[int, ScoreTier]] = [
    (90, ScoreTier.EXCELLENT),
    (70, ScoreTier.GOOD),
    (50, ScoreTier.NEEDS_IMPROVEMENT),
]

TIER_COLORS: dict[ScoreTier, RGB] = {
    ScoreTier.EXCELLENT: GREEN,
    ScoreTier.GOOD: CYAN,
    ScoreTier.NEEDS_IMPROVEMENT: AMBER,
    ScoreTier.POOR: RED,
}


def clamp_score(value: object) -> float:
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    if number != number:  # NaN
        return 0.0
    return min(100.0, max(0.0, number))


def classify(score: object) -> tuple[ScoreTier, RGB]:
    value = clamp_score(score)
    for threshold, tier in TIER_THRESHOLDS:
        if value >= threshold:
            return tier, TIER_COLORS[tier]
    return ScoreTier.POOR, TIER_COLORS[ScoreTier.POOR]


def score_color(score: object) -> RGB:
    return classify(score)[1]


def score_label(score: object) -> str:
    return classify(score)[0].value


def hex_to_rgb(value: str) -> RGB:
    clean = value.strip().lstrip("#")
    return int(clean[0:2], 16), int(clean[2:4], 16), int(clean[4:6], 16)


def shade(color: RGB, delta: tuple[int, int, int]) -> RGB:
    return tuple(min(255, max(0, channel + step)) for channel, step in zip(color, delta))  # type: ignore[return-value]
