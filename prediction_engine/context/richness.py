from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence


RICH_DATA_REASON = "rich data coverage"

HIGH_THRESHOLD = 70
MEDIUM_THRESHOLD = 45


@dataclass(frozen=True)
class DataRichness:
    score: int
    level: str
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {"score": int(self.score), "level": self.level, "reason": self.reason}


def confidence_level(score: float) -> str:
    if score >= HIGH_THRESHOLD:
        return "High"
    if score >= MEDIUM_THRESHOLD:
        return "Medium"
    return "Low"


def _form_len(form: Sequence[Any] | None) -> int:
    if form is None:
        return 0
    try:
        return len(form)
    except TypeError:
        return 0


def score_richness(
    *,
    home_stats: Any,
    away_stats: Any,
    home_form: Sequence[Any] | None,
    away_form: Sequence[Any] | None,
    h2h_meetings: int,
    injuries_reachable: bool,
    standings_available: bool,
) -> DataRichness:
    score = 0
    shortfalls: list[str] = []

    stats_present = int(bool(home_stats)) + int(bool(away_stats))
    if stats_present == 2:
        score += 35
    elif stats_present == 1:
        score += 20
        shortfalls.append("Limited team stats")
    else:
        score += 5
        shortfalls.append("Limited team stats")

    depth = min(_form_len(home_form), _form_len(away_form))
    if depth >= 5:
        score += 25
    elif depth >= 3:
        score += 15
        shortfalls.append("Sparse recent form")
    else:
        score += 5
        shortfalls.append("Sparse recent form")

    meetings = max(0, int(h2h_meetings or 0))
    if meetings >= 3:
        score += 10
    elif meetings > 0:
        score += 6
        shortfalls.append("Limited head-to-head history")
    else:
        score += 2
        shortfalls.append("No head-to-head history")

    if injuries_reachable:
        score += 10
    else:
        score += 2
        shortfalls.append("Injury feed unavailable")

    if standings_available:
        score += 10
    else:
        score += 2
        shortfalls.append("League standings unavailable")

    score = max(0, min(100, score))
    return DataRichness(
        score=score,
        level=confidence_level(score),
        reason="; ".join(shortfalls) if shortfalls else RICH_DATA_REASON,
    )


def apply_richness(prediction: dict[str, Any], richness: DataRichness) -> dict[str, Any]:
    """Fill confidence fields the model left empty; never override what it supplied."""
    out = dict(prediction)
    if not out.get("confidence"):
        out["confidence"] = richness.level
    if out.get("confidencePercentage") is None:
        out["confidencePercentage"] = richness.score
    if not out.get("confidenceReason"):
        out["confidenceReason"] = richness.reason
    return out
