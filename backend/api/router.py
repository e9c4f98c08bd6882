from fastapi import APIRouter, Depends, HTTPException, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from api.dependencies import get_prediction_service
from models.requests import PredictDelayRequest
from models.responses import (
    ClusterAssignment,
    CrossValidationMetrics,
    DelayRankingRecord,
    FeatureImportance,
    HealthResponse,
    PredictionResponse,
    ProjectPrediction,
    RiskRecord,
    TrainResponse,
)
from services.pipeline.base import TrainingDisabled, TrainingFailure
from services.pipeline.orchestrator import PredictionService

router = APIRouter()
limiter = Limiter(key_func=get_remote_address)


@router.get("/health", response_model=HealthResponse)
async def health(svc: PredictionService = Depends(get_prediction_service)):
    return svc.serving_status()


@router.post("/predict", response_model=PredictionResponse)
def predict(body: PredictDelayRequest, svc: PredictionService = Depends(get_prediction_service)):
    delay = svc.predict_delay(
        body.length_m,
        body.base_price,
        body.task_count,
        body.change_request_count,
        body.interaction_count,
    )
    return PredictionResponse(predicted_delay_days=delay)


@router.get("/projects/{project_id}/prediction", response_model=ProjectPrediction)
def project_prediction(project_id: int, svc: PredictionService = Depends(get_prediction_service)):
    result = svc.predict_project(project_id)
    if result is None:
        raise HTTPException(status_code=404, detail=f"Project {project_id} not found")
    return result


@router.post("/ml/train", response_model=TrainResponse)
@limiter.limit("10/minute")
def train(request: Request, svc: PredictionService = Depends(get_prediction_service)):
    try:
        row_count = svc.train()
    except TrainingDisabled as e:
        raise HTTPException(status_code=409, detail=str(e))
    except TrainingFailure as e:
        raise HTTPException(status_code=500, detail=f"Training failed: {e}")
    return TrainResponse(row_count=row_count, model_kind=svc.regressor.current().kind)


@router.get("/ml/metrics", response_model=CrossValidationMetrics)
def metrics(
    folds: int | None = Query(None, ge=2, le=20),
    svc: PredictionService = Depends(get_prediction_service),
):
    return svc.cross_validate(folds)


@router.get("/ml/feature-importance", response_model=FeatureImportance)
def feature_importance(svc: PredictionService = Depends(get_prediction_service)):
    return svc.feature_importance()


@router.get("/ml/high-risk-projects", response_model=list[RiskRecord])
def high_risk_projects(svc: PredictionService = Depends(get_prediction_service)):
    return svc.high_risk_projects()


@router.get("/ml/top-delays", response_model=list[DelayRankingRecord])
def top_delays(
    limit: int = Query(5, ge=1, le=50),
    svc: PredictionService = Depends(get_prediction_service),
):
    return svc.top_predicted_delays(limit)


@router.get("/ml/clusters", response_model=list[ClusterAssignment])
def clusters(
    k: int | None = Query(None, ge=1, le=10),
    svc: PredictionService = Depends(get_prediction_service),
):
    return svc.run_clustering(k)
