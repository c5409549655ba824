from __future__ import annotations

from prediction_engine.records import ActualResult
from prediction_engine.verification.accuracy import predicted_outcome, score_prediction


FULL_PREDICTION = {
    "homeWinProbability": 20,
    "drawProbability": 50,
    "awayWinProbability": 30,
    "predictedScoreline": "1-1",
    "btts": {"yesProbability": 60, "noProbability": 40},
    "goalLine": {"line": 2.5, "overProbability": 45, "underProbability": 55},
    "cleanSheet": {"homeTeam": 30, "awayTeam": 25},
}


def test_draw_prediction_scores_every_market() -> None:
    result = score_prediction(FULL_PREDICTION, ActualResult(home_score=1, away_score=1))
    assert result.to_dict() == {
        "outcome": True,
        "scoreline": True,
        "btts": True,
        "goalLine": True,
        "cleanSheet": False,
    }


def test_scoring_is_deterministic() -> None:
    actual = ActualResult(home_score=3, away_score=0)
    assert score_prediction(FULL_PREDICTION, actual) == score_prediction(FULL_PREDICTION, actual)


def test_outcome_tie_breaks() -> None:
    assert predicted_outcome({"homeWinProbability": 40, "drawProbability": 20, "awayWinProbability": 40}) == "home"
    assert predicted_outcome({"homeWinProbability": 20, "drawProbability": 40, "awayWinProbability": 40}) == "away"
    assert predicted_outcome({"homeWinProbability": 20, "drawProbability": 50, "awayWinProbability": 30}) == "draw"
    assert predicted_outcome({}) == "home"


def test_goal_line_over_hits_when_total_exceeds_line() -> None:
    prediction = {"goalLine": {"line": 2.5, "overProbability": 70, "underProbability": 30}}
    assert score_prediction(prediction, ActualResult(home_score=2, away_score=1)).goal_line is True
    assert score_prediction(prediction, ActualResult(home_score=1, away_score=1)).goal_line is False


def test_clean_sheet_needs_a_shutout_and_a_confident_side() -> None:
    prediction = {"cleanSheet": {"homeTeam": 62, "awayTeam": 10}}
    assert score_prediction(prediction, ActualResult(home_score=2, away_score=0)).clean_sheet is True
    assert score_prediction(prediction, ActualResult(home_score=0, away_score=2)).clean_sheet is False
    assert score_prediction(prediction, ActualResult(home_score=1, away_score=1)).clean_sheet is False


def test_missing_markets_count_as_misses() -> None:
    result = score_prediction({"homeWinProbability": 60}, ActualResult(home_score=2, away_score=0))
    assert result.outcome is True
    assert result.scoreline is False
    assert result.btts is False
    assert result.goal_line is False
    assert result.clean_sheet is False
