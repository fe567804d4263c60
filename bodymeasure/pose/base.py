from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from bodymeasure.pose.types import Pose


class InitializationError(RuntimeError):
	"""The pose model could not be constructed. Not retried."""


class PoseProvider(ABC):
	"""
	Model adapter interface.

	Implementations take an RGB image (H,W,3 uint8) and return the detected
	poses, best-ranked first. An empty list means nobody was found.
	"""

	@abstractmethod
	def name(self) -> str: ...

	@abstractmethod
	def infer_rgb(self, rgb) -> List[Pose]: ...

	@abstractmethod
	def close(self) -> None: ...
