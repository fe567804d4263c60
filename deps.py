"""
FastAPI dependencies. Use Depends(get_state) in route handlers to receive AppState.
"""
from fastapi import HTTPException, Request

from app_state import AppState
from bodymeasure.pipeline import MeasurementPipeline


def get_state(request: Request) -> AppState:
	"""Return the app state instance attached in lifespan."""
	return request.app.state.state


def get_pipeline(request: Request) -> MeasurementPipeline:
	"""Return the measurement pipeline; 503 until lifespan has created it."""
	state: AppState = request.app.state.state
	if state.pipeline is None:
		raise HTTPException(status_code=503, detail="Server not ready")
	return state.pipeline
