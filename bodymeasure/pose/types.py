from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional


class LandmarkName(str, Enum):
	"""
	Closed vocabulary of COCO-17 body landmarks.

	Values are the snake_case names used by most 2D pose models.
	"""

	NOSE = "nose"
	LEFT_EYE = "left_eye"
	RIGHT_EYE = "right_eye"
	LEFT_EAR = "left_ear"
	RIGHT_EAR = "right_ear"
	LEFT_SHOULDER = "left_shoulder"
	RIGHT_SHOULDER = "right_shoulder"
	LEFT_ELBOW = "left_elbow"
	RIGHT_ELBOW = "right_elbow"
	LEFT_WRIST = "left_wrist"
	RIGHT_WRIST = "right_wrist"
	LEFT_HIP = "left_hip"
	RIGHT_HIP = "right_hip"
	LEFT_KNEE = "left_knee"
	RIGHT_KNEE = "right_knee"
	LEFT_ANKLE = "left_ankle"
	RIGHT_ANKLE = "right_ankle"


@dataclass(frozen=True)
class Landmark:
	"""
	A single 2D landmark in pixel coordinates.
	"""

	name: LandmarkName
	x: float
	y: float
	confidence: float  # best-effort; not used for filtering


@dataclass(frozen=True)
class Pose:
	"""
	Landmarks estimated for one detected body in a single frame.

	- Coordinates are in pixel space of the frame that was analysed.
	- Landmarks the model did not report are simply absent from the mapping.
	"""

	backend: str
	width: int
	height: int
	landmarks: Dict[LandmarkName, Landmark] = field(default_factory=dict)

	def get(self, name: LandmarkName | str) -> Optional[Landmark]:
		if not self.landmarks:
			return None
		try:
			key = LandmarkName(name)
		except ValueError:
			return None
		return self.landmarks.get(key)
