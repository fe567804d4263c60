"""Fakes for camera, detector and poses."""

import asyncio
import threading
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from bodymeasure.camera import FrameSource
from bodymeasure.config import AppConfig
from bodymeasure.pose import InitializationError, Landmark, LandmarkName, Pose, PoseProvider


def make_pose(points: Dict[str, Tuple[float, float]], width: int = 640, height: int = 480) -> Pose:
	"""Build a Pose from {"nose": (x, y), ...}."""
	pose = Pose(backend="fake", width=width, height=height)
	for name, (x, y) in points.items():
		key = LandmarkName(name)
		pose.landmarks[key] = Landmark(name=key, x=float(x), y=float(y), confidence=0.9)
	return pose


SCENARIO_A = {
	"left_shoulder": (100, 200),
	"right_shoulder": (200, 200),
	"left_ankle": (150, 600),
	"nose": (150, 100),
}


def without(points: Dict[str, Tuple[float, float]], name: str) -> Dict[str, Tuple[float, float]]:
	return {k: v for k, v in points.items() if k != name}


class FakeFrameSource(FrameSource):
	"""In-memory frame source; `frame=None` models "no frame yet"."""

	def __init__(self, frame: Optional[Any] = None, t_host: Optional[float] = 1000.0) -> None:
		self.frame = frame
		self.t_host = t_host
		self.started = False
		self.stopped = False

	@classmethod
	def with_black_frame(cls, width: int = 640, height: int = 480) -> "FakeFrameSource":
		return cls(np.zeros((height, width, 3), dtype=np.uint8))

	def name(self) -> str:
		return "fake"

	def start(self) -> None:
		self.started = True

	def stop(self) -> None:
		self.stopped = True

	def get_status(self) -> Dict[str, Any]:
		return {"backend": "fake", "running": self.started and not self.stopped, "has_frame": self.frame is not None}

	def get_latest_frame(self):
		if self.frame is None:
			return None, None
		return self.frame, self.t_host

	def get_latest_jpeg(self):
		if self.frame is None:
			return None, None
		return b"\xff\xd8fake\xff\xd9", self.t_host


class FakeProvider(PoseProvider):
	"""Returns a scripted list of poses for every frame."""

	def __init__(self, poses: Optional[List[Pose]] = None) -> None:
		self.poses: List[Pose] = list(poses or [])
		self.calls = 0

	def name(self) -> str:
		return "fake_provider"

	def infer_rgb(self, rgb) -> List[Pose]:
		self.calls += 1
		return list(self.poses)

	def close(self) -> None:
		pass


def initializer_for(provider: PoseProvider):
	async def _init(cfg: Optional[AppConfig]) -> PoseProvider:
		return provider

	return _init


async def failing_initializer(cfg: Optional[AppConfig]) -> PoseProvider:
	raise InitializationError("MediaPipe is not installed")


def gated(initializer, gate: threading.Event):
	"""Hold `initializer` back until the test sets `gate`."""

	async def _init(cfg: Optional[AppConfig]) -> PoseProvider:
		while not gate.is_set():
			await asyncio.sleep(0.01)
		return await initializer(cfg)

	return _init


async def direct_detect(handle: PoseProvider, frame) -> Sequence[Pose]:
	"""Detector that calls the provider inline (no executor)."""
	return handle.infer_rgb(frame)
