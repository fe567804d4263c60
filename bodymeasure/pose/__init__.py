"""
Pose estimation utilities.

This package defines a model-agnostic Pose interface and provider adapters
(e.g., MediaPipe Pose), plus the async detector entry points used by the
measurement pipeline.
"""

from __future__ import annotations

import asyncio
from typing import List, Optional

from bodymeasure.config import AppConfig, get_config
from bodymeasure.pose.base import InitializationError, PoseProvider
from bodymeasure.pose.types import Landmark, LandmarkName, Pose


def get_pose_provider(cfg: Optional[AppConfig] = None) -> PoseProvider:
	"""
	Build the configured pose provider. Raises InitializationError.
	"""
	cfg = cfg or get_config()
	backend = (cfg.detector.backend or "mediapipe").strip().lower()
	if backend in ("mediapipe", "mp"):
		from bodymeasure.pose.mediapipe_provider import MediaPipePoseProvider

		return MediaPipePoseProvider(
			min_detection_confidence=cfg.detector.min_detection_confidence,
			min_tracking_confidence=cfg.detector.min_tracking_confidence,
		)
	raise InitializationError(f"Unknown pose detector backend: {backend!r}")


async def initialize_detector(cfg: Optional[AppConfig] = None) -> PoseProvider:
	"""
	One-time model setup. Runs in the default executor since model loading
	can take seconds; callers must not detect before this returns.
	"""
	loop = asyncio.get_running_loop()
	try:
		return await loop.run_in_executor(None, get_pose_provider, cfg)
	except InitializationError:
		raise
	except Exception as e:
		raise InitializationError(f"Pose detector init failed: {e!r}") from e


async def detect(handle: PoseProvider, frame) -> List[Pose]:
	"""Detect poses in one RGB frame, best-ranked first."""
	loop = asyncio.get_running_loop()
	return await loop.run_in_executor(None, handle.infer_rgb, frame)


__all__ = [
	"InitializationError",
	"Landmark",
	"LandmarkName",
	"Pose",
	"PoseProvider",
	"detect",
	"get_pose_provider",
	"initialize_detector",
]
