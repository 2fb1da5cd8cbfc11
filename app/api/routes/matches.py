from fastapi import APIRouter, Depends

from app.core.rate_limit import rate_limit
from app.schemas.prediction import MatchPredictionRequest, MatchPredictionResponse
from app.services.prediction_service import predict_match

router = APIRouter(tags=["Matches"])


@router.post(
    "/matches/prediction",
    response_model=MatchPredictionResponse,
    dependencies=[Depends(rate_limit("match"))],
)
async def create_match_prediction(payload: MatchPredictionRequest) -> MatchPredictionResponse:
    """Predict the outcome of a match before it is recorded.

    Rate limited under the ``match`` category.

    Args:
        payload: Player ratings and optional form/head-to-head/streak/partnership
            signals for both teams.

    Returns:
        MatchPredictionResponse: Win probabilities, predicted winner,
            confidence and contributing factors.
    """
    return predict_match(payload)
