"""Pydantic schemas for match prediction requests and responses."""

from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, Field


class TeamPredictionInput(BaseModel):
    """One side of a doubles match.

    Optional signals only count when both teams provide them.
    """

    ratings: List[float] = Field(
        ...,
        min_length=1,
        max_length=2,
        description="Current ELO rating of each player; the team rating is their average.",
    )
    form: float | None = Field(
        default=None, ge=0, le=1, description="Recent win rate (0-1)."
    )
    head_to_head: float | None = Field(
        default=None, ge=0, le=1, description="Win rate against this opponent (0-1)."
    )
    streak: int | None = Field(
        default=None,
        description="Current streak: positive for consecutive wins, negative for losses.",
    )
    partnership_rate: float | None = Field(
        default=None, ge=0, le=1, description="Historical win rate of this pair together (0-1)."
    )

    @property
    def average_rating(self) -> float:
        return sum(self.ratings) / len(self.ratings)


class MatchPredictionRequest(BaseModel):
    team1: TeamPredictionInput
    team2: TeamPredictionInput


class PredictionFactor(BaseModel):
    """A signal that moved the prediction, formatted for display."""

    name: str = Field(..., description="Factor label, e.g. 'ELO advantage'.")
    value: str = Field(..., description="Signed value, e.g. '+200' or '-4%'.")
    weight: str = Field(..., description="How much the factor can weigh, e.g. '±5%'.")
    impact: Literal["team1", "team2", "neutral"]


class MatchPredictionResponse(BaseModel):
    team1_win_prob: float = Field(..., ge=0, le=1)
    team2_win_prob: float = Field(..., ge=0, le=1)
    predicted_winner: Literal[1, 2]
    confidence: Literal["low", "medium", "high"]
    factors: List[PredictionFactor] = Field(default_factory=list)
