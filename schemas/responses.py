"""Pydantic response models for API validation and docs."""
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class MeasurementModel(BaseModel):
	"""Latest published body measurement, whole centimeters."""

	height: int = Field(..., ge=0, description="Standing height (nose to left ankle, vertical), cm")
	shoulder_width: int = Field(..., ge=0, description="Left to right shoulder distance, cm")
	t_host: Optional[float] = Field(None, description="Capture time of the measured frame (epoch seconds)")


class MeasurementResponse(BaseModel):
	"""Response from GET /measurement. measurement is null until the first success."""

	measurement: Optional[MeasurementModel] = None
	state: str
	error: Optional[str] = None


class StatusResponse(BaseModel):
	"""Response from GET /status."""

	state: str
	error: Optional[str] = None
	detector: Optional[str] = None
	measurement: Optional[MeasurementModel] = None
	sample_interval_seconds: float
	pixel_to_cm_ratio: float
	counters: Dict[str, int]
	camera: Dict[str, Any]
