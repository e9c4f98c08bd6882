"""Shared dependencies for API routes."""

from fastapi import Request

from services.pipeline.orchestrator import PredictionService


def get_prediction_service(request: Request) -> PredictionService:
    return request.app.state.prediction_service
