from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Sequence

from bodymeasure.pose.types import Landmark, LandmarkName, Pose


PIXEL_TO_CM_RATIO = 0.264583

REQUIRED_LANDMARKS = (
	LandmarkName.LEFT_SHOULDER,
	LandmarkName.RIGHT_SHOULDER,
	LandmarkName.LEFT_ANKLE,
	LandmarkName.NOSE,
)


@dataclass(frozen=True)
class Measurement:
	"""
	Approximate body measurements, whole centimeters.
	"""

	height: int
	shoulder_width: int
	t_host: Optional[float] = None

	def to_dict(self) -> Dict[str, Any]:
		return asdict(self)


def _distance(a: Landmark, b: Landmark) -> float:
	return math.hypot(float(b.x) - float(a.x), float(b.y) - float(a.y))


def _round_half_up(v: float) -> int:
	# Math.round semantics: 0.5 goes up, unlike Python's banker's round().
	return int(math.floor(float(v) + 0.5))


def px_to_cm(px: float, ratio: float = PIXEL_TO_CM_RATIO) -> int:
	return _round_half_up(float(px) * float(ratio))


def calculate_measurements(
	poses: Sequence[Pose],
	ratio: float = PIXEL_TO_CM_RATIO,
	t_host: Optional[float] = None,
) -> Optional[Measurement]:
	"""
	Derive a Measurement from the primary (first) pose.

	Returns None when there is no pose, or the primary pose lacks any of the
	required landmarks or has a non-finite coordinate for one of them. Later
	poses are never used as a fallback.

	Height is the vertical pixel distance nose -> left ankle only; horizontal
	offset and foreshortening are ignored (rough approximation).
	"""
	if not poses:
		return None
	pose = poses[0]

	found = [pose.get(name) for name in REQUIRED_LANDMARKS]
	if any(lm is None for lm in found):
		return None
	if not all(math.isfinite(float(lm.x)) and math.isfinite(float(lm.y)) for lm in found):
		return None
	left_shoulder, right_shoulder, left_ankle, nose = found

	shoulder_width_px = _distance(left_shoulder, right_shoulder)
	height_px = abs(float(nose.y) - float(left_ankle.y))

	return Measurement(
		height=px_to_cm(height_px, ratio),
		shoulder_width=px_to_cm(shoulder_width_px, ratio),
		t_host=t_host,
	)
