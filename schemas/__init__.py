"""Pydantic response models for API validation and docs."""
from schemas.responses import (
	MeasurementModel,
	MeasurementResponse,
	StatusResponse,
)

__all__ = [
	"MeasurementModel",
	"MeasurementResponse",
	"StatusResponse",
]
