"""Measurement routes. Routes: /measurement, /status."""
from fastapi import APIRouter, Depends

from bodymeasure.pipeline import MeasurementPipeline
from deps import get_pipeline
from schemas.responses import MeasurementResponse, StatusResponse

router = APIRouter(tags=["measurement"])


@router.get("/measurement", response_model=MeasurementResponse)
async def get_measurement(pipeline: MeasurementPipeline = Depends(get_pipeline)):
	"""Latest published measurement (or null), plus pipeline state."""
	latest = pipeline.latest
	return {
		"measurement": latest.to_dict() if latest is not None else None,
		"state": pipeline.state.value,
		"error": pipeline.error,
	}


@router.get("/status", response_model=StatusResponse)
async def get_status(pipeline: MeasurementPipeline = Depends(get_pipeline)):
	snap = pipeline.snapshot()
	snap["camera"] = pipeline.frame_source.get_status()
	return snap
