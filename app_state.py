"""
Explicit app state – single source of truth for runtime lifecycle.
Created in lifespan, attached to app.state.state; injected into routes via Depends(get_state).
"""
from typing import Any, Optional

from bodymeasure.camera import FrameSource
from bodymeasure.config import AppConfig
from bodymeasure.periodic import PeriodicTask
from bodymeasure.pipeline import MeasurementPipeline


class AppState:
	"""
	Holds all runtime state for the app. Populated in server lifespan.
	"""
	cfg: Optional[AppConfig] = None

	# Frame source and measurement pipeline context
	camera: Optional[FrameSource] = None
	pipeline: Optional[MeasurementPipeline] = None

	# WebSocket fan-out (set in lifespan)
	hub: Any = None

	# Task refs (set in lifespan; cancelled on shutdown)
	sampler: Optional[PeriodicTask] = None
	init_task: Any = None
