"""
Per-frame measurement pipeline.

One sampling tick = grab the newest frame, run pose detection, derive a
Measurement from the primary pose and publish it. Routine misses (no frame,
nobody in view, missing landmarks, a failed inference) skip the tick and
leave the last published Measurement in place.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from bodymeasure.camera import FrameSource
from bodymeasure.config import AppConfig, get_config
from bodymeasure.measurement import PIXEL_TO_CM_RATIO, Measurement, calculate_measurements
from bodymeasure.pose import InitializationError, Pose, PoseProvider, detect, initialize_detector

logger = logging.getLogger(__name__)

MeasurementListener = Callable[[Measurement], None]


class PipelineState(str, Enum):
	UNINITIALIZED = "uninitialized"
	READY = "ready"
	DETECTING = "detecting"
	# Detector could not be built; terminal.
	UNAVAILABLE = "unavailable"


class MeasurementPipeline:
	"""
	Explicit pipeline context: detector handle, frame source, latest result.

	Ticks never overlap: a tick that arrives while a detection is still
	outstanding returns immediately (counted as `skipped_busy`).
	"""

	def __init__(
		self,
		frame_source: FrameSource,
		cfg: Optional[AppConfig] = None,
		*,
		initializer: Callable[[Optional[AppConfig]], Awaitable[PoseProvider]] = initialize_detector,
		detector: Callable[[PoseProvider, Any], Awaitable[Sequence[Pose]]] = detect,
	) -> None:
		self._cfg = cfg or get_config()
		self._frame_source = frame_source
		self._initializer = initializer
		self._detect = detector

		self._state = PipelineState.UNINITIALIZED
		self._handle: Optional[PoseProvider] = None
		self._error: Optional[str] = None
		# Replaced wholesale on publish; Measurement is immutable.
		self._latest: Optional[Measurement] = None
		self._listeners: List[MeasurementListener] = []

		self.counters: Dict[str, int] = {
			"ticks": 0,
			"skipped_not_ready": 0,
			"skipped_busy": 0,
			"no_frame": 0,
			"no_subject": 0,
			"detect_errors": 0,
			"published": 0,
		}

	@property
	def state(self) -> PipelineState:
		return self._state

	@property
	def error(self) -> Optional[str]:
		return self._error

	@property
	def latest(self) -> Optional[Measurement]:
		return self._latest

	@property
	def frame_source(self) -> FrameSource:
		return self._frame_source

	def add_listener(self, cb: MeasurementListener) -> None:
		self._listeners.append(cb)

	def remove_listener(self, cb: MeasurementListener) -> None:
		try:
			self._listeners.remove(cb)
		except ValueError:
			pass

	async def initialize(self) -> bool:
		"""
		Build the detector once. On InitializationError the pipeline becomes
		UNAVAILABLE for good and the message is kept for consumers.
		"""
		if self._state is not PipelineState.UNINITIALIZED:
			return self._state is not PipelineState.UNAVAILABLE
		try:
			handle = await self._initializer(self._cfg)
		except InitializationError as e:
			self._error = str(e) or type(e).__name__
			self._state = PipelineState.UNAVAILABLE
			logger.error("Pose detector unavailable: %s", self._error)
			return False
		self._handle = handle
		self._state = PipelineState.READY
		logger.info("Pose detector ready (%s)", handle.name())
		return True

	async def tick(self) -> bool:
		"""Run one sampling cycle. Returns True if a Measurement was published."""
		self.counters["ticks"] += 1
		if self._state is PipelineState.DETECTING:
			self.counters["skipped_busy"] += 1
			return False
		handle = self._handle
		if self._state is not PipelineState.READY or handle is None:
			self.counters["skipped_not_ready"] += 1
			return False

		frame, t_host = self._frame_source.get_latest_frame()
		if frame is None:
			self.counters["no_frame"] += 1
			return False

		self._state = PipelineState.DETECTING
		try:
			poses = await self._detect(handle, frame)
		except Exception as e:
			self.counters["detect_errors"] += 1
			logger.debug("Pose detection failed: %r", e)
			return False
		finally:
			self._state = PipelineState.READY

		measurement = calculate_measurements(poses or [], t_host=t_host)
		if measurement is None:
			self.counters["no_subject"] += 1
			return False

		self._publish(measurement)
		return True

	def _publish(self, measurement: Measurement) -> None:
		self._latest = measurement
		self.counters["published"] += 1
		for cb in list(self._listeners):
			try:
				cb(measurement)
			except Exception:
				logger.exception("Measurement listener failed")

	def snapshot(self) -> Dict[str, Any]:
		latest = self._latest
		return {
			"state": self._state.value,
			"error": self._error,
			"detector": self._handle.name() if self._handle is not None else None,
			"measurement": latest.to_dict() if latest is not None else None,
			"sample_interval_seconds": float(self._cfg.measurement.sample_interval_seconds),
			"pixel_to_cm_ratio": PIXEL_TO_CM_RATIO,
			"counters": dict(self.counters),
		}
