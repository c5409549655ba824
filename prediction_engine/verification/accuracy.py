from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from prediction_engine.records import ActualResult


@dataclass(frozen=True)
class AccuracyBreakdown:
    outcome: bool
    scoreline: bool
    btts: bool
    goal_line: bool
    clean_sheet: bool

    def to_dict(self) -> dict[str, bool]:
        return {
            "outcome": bool(self.outcome),
            "scoreline": bool(self.scoreline),
            "btts": bool(self.btts),
            "goalLine": bool(self.goal_line),
            "cleanSheet": bool(self.clean_sheet),
        }


def _num(v: object) -> float:
    if isinstance(v, bool):
        return 0.0
    if isinstance(v, (int, float)):
        return float(v)
    try:
        return float(str(v))
    except (TypeError, ValueError):
        return 0.0


def predicted_outcome(prediction: dict[str, Any]) -> str:
    """Argmax of the 1X2 probabilities; ties go home, then away, then draw."""
    p1 = _num(prediction.get("homeWinProbability"))
    px = _num(prediction.get("drawProbability"))
    p2 = _num(prediction.get("awayWinProbability"))
    if p1 >= px and p1 >= p2:
        return "home"
    if p2 >= px:
        return "away"
    return "draw"


def actual_outcome(result: ActualResult) -> str:
    if result.home_score > result.away_score:
        return "home"
    if result.home_score < result.away_score:
        return "away"
    return "draw"


def score_prediction(prediction: dict[str, Any], result: ActualResult) -> AccuracyBreakdown:
    hs, aws = int(result.home_score), int(result.away_score)
    total = hs + aws

    btts = prediction.get("btts")
    btts_ok = False
    if isinstance(btts, dict):
        yes, no = _num(btts.get("yesProbability")), _num(btts.get("noProbability"))
        btts_ok = yes > no if (hs > 0 and aws > 0) else no > yes

    goal_line = prediction.get("goalLine")
    goal_line_ok = False
    if isinstance(goal_line, dict) and goal_line.get("line") is not None:
        over, under = _num(goal_line.get("overProbability")), _num(goal_line.get("underProbability"))
        goal_line_ok = over > under if total > _num(goal_line.get("line")) else under > over

    clean_sheet = prediction.get("cleanSheet")
    clean_sheet_ok = False
    if isinstance(clean_sheet, dict):
        away_kept = hs == 0 and _num(clean_sheet.get("awayTeam")) > 50
        home_kept = aws == 0 and _num(clean_sheet.get("homeTeam")) > 50
        clean_sheet_ok = away_kept or home_kept

    return AccuracyBreakdown(
        outcome=predicted_outcome(prediction) == actual_outcome(result),
        scoreline=str(prediction.get("predictedScoreline") or "") == f"{hs}-{aws}",
        btts=btts_ok,
        goal_line=goal_line_ok,
        clean_sheet=clean_sheet_ok,
    )
