from __future__ import annotations

import logging
from typing import List

from bodymeasure.pose.base import InitializationError, PoseProvider
from bodymeasure.pose.types import Landmark, LandmarkName, Pose

logger = logging.getLogger(__name__)

# Lite model: single-person, speed-oriented. Fixed, not configurable.
MODEL_COMPLEXITY = 0


# MediaPipe PoseLandmark attribute for each COCO-17 landmark.
_MP_LANDMARKS = {
	LandmarkName.NOSE: "NOSE",
	LandmarkName.LEFT_EYE: "LEFT_EYE",
	LandmarkName.RIGHT_EYE: "RIGHT_EYE",
	LandmarkName.LEFT_EAR: "LEFT_EAR",
	LandmarkName.RIGHT_EAR: "RIGHT_EAR",
	LandmarkName.LEFT_SHOULDER: "LEFT_SHOULDER",
	LandmarkName.RIGHT_SHOULDER: "RIGHT_SHOULDER",
	LandmarkName.LEFT_ELBOW: "LEFT_ELBOW",
	LandmarkName.RIGHT_ELBOW: "RIGHT_ELBOW",
	LandmarkName.LEFT_WRIST: "LEFT_WRIST",
	LandmarkName.RIGHT_WRIST: "RIGHT_WRIST",
	LandmarkName.LEFT_HIP: "LEFT_HIP",
	LandmarkName.RIGHT_HIP: "RIGHT_HIP",
	LandmarkName.LEFT_KNEE: "LEFT_KNEE",
	LandmarkName.RIGHT_KNEE: "RIGHT_KNEE",
	LandmarkName.LEFT_ANKLE: "LEFT_ANKLE",
	LandmarkName.RIGHT_ANKLE: "RIGHT_ANKLE",
}


class MediaPipePoseProvider(PoseProvider):
	"""
	MediaPipe Pose provider that outputs the COCO-17 landmark set.

	Notes:
	- MediaPipe Pose is single-person, so at most one Pose is returned.
	- MediaPipe uses normalized coordinates; we convert to pixel space.
	- `visibility` is used as confidence (best-effort).
	"""

	def __init__(
		self,
		min_detection_confidence: float = 0.5,
		min_tracking_confidence: float = 0.5,
	) -> None:
		try:
			import mediapipe as mp  # type: ignore
		except Exception as e:
			raise InitializationError(
				"MediaPipe is not installed. Install it with: pip install mediapipe"
			) from e

		try:
			self._mp = mp
			self._pose = mp.solutions.pose.Pose(
				static_image_mode=False,
				model_complexity=MODEL_COMPLEXITY,
				enable_segmentation=False,
				smooth_landmarks=True,
				min_detection_confidence=float(min_detection_confidence),
				min_tracking_confidence=float(min_tracking_confidence),
			)
		except Exception as e:
			raise InitializationError(f"MediaPipe Pose init failed: {e!r}") from e
		logger.info("MediaPipe Pose ready (model_complexity=%d)", MODEL_COMPLEXITY)

	def name(self) -> str:
		return "mediapipe_pose"

	def infer_rgb(self, rgb) -> List[Pose]:
		# rgb: HxWx3
		h, w = int(rgb.shape[0]), int(rgb.shape[1])
		res = self._pose.process(rgb)
		if not res or not getattr(res, "pose_landmarks", None):
			return []

		lm = res.pose_landmarks.landmark
		PL = self._mp.solutions.pose.PoseLandmark
		pose = Pose(backend=self.name(), width=w, height=h)
		for name, attr in _MP_LANDMARKS.items():
			try:
				p = lm[int(getattr(PL, attr))]
			except (IndexError, AttributeError):
				continue
			pose.landmarks[name] = Landmark(
				name=name,
				x=float(p.x) * float(w),
				y=float(p.y) * float(h),
				confidence=float(getattr(p, "visibility", 0.0) or 0.0),
			)
		return [pose]

	def close(self) -> None:
		try:
			if self._pose:
				self._pose.close()
		except Exception:
			pass
