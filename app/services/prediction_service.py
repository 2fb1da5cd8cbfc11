"""ELO-based match prediction.

The base probability is the standard ELO expectation between the two team
ratings. Optional signals (recent form, head-to-head, streak, partnership)
nudge it by a few percent each, and the result is clamped so no match is
ever predicted as a certainty.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Literal

from app.schemas.prediction import (
    MatchPredictionRequest,
    MatchPredictionResponse,
    PredictionFactor,
    TeamPredictionInput,
)

MIN_PROBABILITY = 0.05
MAX_PROBABILITY = 0.95
FACTOR_REPORT_THRESHOLD = 0.01

Confidence = Literal["low", "medium", "high"]


def expected_score(rating: float, opponent_rating: float) -> float:
    """Probability that ``rating`` beats ``opponent_rating``."""
    return 1 / (1 + 10 ** ((opponent_rating - rating) / 400))


def confidence_level(win_prob: float) -> Confidence:
    """Map the favourite's win probability to a confidence label."""
    if 0.70 <= win_prob <= 0.85:
        return "high"
    if 0.55 <= win_prob <= 0.70 or 0.15 <= win_prob <= 0.30:
        return "medium"
    return "low"


def _percent(value: float) -> str:
    """Format ``value`` as a whole percentage, rounding halves away from zero."""
    return str(Decimal(value).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _elo_factor(advantage: float) -> PredictionFactor:
    if advantage == 0:
        value, impact = "0", "neutral"
    else:
        value = f"{advantage:+g}"
        impact = "team1" if advantage > 0 else "team2"
    return PredictionFactor(
        name="ELO advantage",
        value=value,
        weight=f"{_percent(abs(advantage / 50))}%",
        impact=impact,
    )


def _signal_factor(
    name: str,
    adjustment: float,
    weight: str,
    team1_ahead: bool,
) -> PredictionFactor | None:
    if abs(adjustment) <= FACTOR_REPORT_THRESHOLD:
        return None
    return PredictionFactor(
        name=name,
        value=f"{'+' if team1_ahead else ''}{_percent(adjustment * 100)}%",
        weight=weight,
        impact="team1" if adjustment > 0 else "team2",
    )


def _signal_adjustments(
    team1: TeamPredictionInput, team2: TeamPredictionInput
) -> list[tuple[float, PredictionFactor | None]]:
    adjustments: list[tuple[float, PredictionFactor | None]] = []

    if team1.form is not None and team2.form is not None:
        delta = (team1.form - team2.form) * 0.05
        adjustments.append(
            (delta, _signal_factor("Recent form", delta, "±5%", team1.form > team2.form))
        )

    if team1.head_to_head is not None and team2.head_to_head is not None:
        delta = (team1.head_to_head - team2.head_to_head) * 0.10
        adjustments.append(
            (
                delta,
                _signal_factor(
                    "Head-to-head", delta, "±10%", team1.head_to_head > team2.head_to_head
                ),
            )
        )

    if team1.streak is not None and team2.streak is not None:
        delta = (math.tanh(team1.streak / 3) - math.tanh(team2.streak / 3)) * 0.05
        adjustments.append(
            (delta, _signal_factor("Current streak", delta, "±5%", team1.streak > team2.streak))
        )

    if team1.partnership_rate is not None and team2.partnership_rate is not None:
        delta = (team1.partnership_rate - team2.partnership_rate) * 0.05
        adjustments.append(
            (
                delta,
                _signal_factor(
                    "Partner synergy",
                    delta,
                    "±5%",
                    team1.partnership_rate > team2.partnership_rate,
                ),
            )
        )

    return adjustments


def predict_match(request: MatchPredictionRequest) -> MatchPredictionResponse:
    """Predict the winner of a match from the two teams' ratings and signals.

    Args:
        request: Ratings and optional signals for both teams.

    Returns:
        MatchPredictionResponse with clamped probabilities, the predicted
        winner, a confidence label and the factors that contributed.
    """
    team1_elo = request.team1.average_rating
    team2_elo = request.team2.average_rating

    probability = expected_score(team1_elo, team2_elo)
    factors = [_elo_factor(team1_elo - team2_elo)]

    for delta, factor in _signal_adjustments(request.team1, request.team2):
        probability += delta
        if factor is not None:
            factors.append(factor)

    probability = max(MIN_PROBABILITY, min(MAX_PROBABILITY, probability))

    return MatchPredictionResponse(
        team1_win_prob=probability,
        team2_win_prob=1 - probability,
        predicted_winner=1 if probability > 0.5 else 2,
        confidence=confidence_level(max(probability, 1 - probability)),
        factors=factors,
    )
