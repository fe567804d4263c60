from __future__ import annotations

import asyncio
import io
import time
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, Optional

from bodymeasure.config import AppConfig, get_config


class FrameSource(ABC):
	"""
	Camera capture surface. Frames are pulled on demand, never pushed.
	"""

	@abstractmethod
	def name(self) -> str: ...

	@abstractmethod
	def start(self) -> None: ...

	@abstractmethod
	def stop(self) -> None: ...

	@abstractmethod
	def get_status(self) -> Dict[str, Any]: ...

	@abstractmethod
	def get_latest_frame(self) -> tuple[Optional[Any], Optional[float]]:
		"""
		Return (rgb HxWx3 uint8 array, t_host) for the newest frame, or
		(None, None) if nothing has been captured yet. Thread-safe.
		"""
		...

	@abstractmethod
	def get_latest_jpeg(self) -> tuple[Optional[bytes], Optional[float]]: ...

	async def mjpeg_stream(self, fps: float) -> AsyncIterator[bytes]:
		async for chunk in mjpeg_from_latest(self.get_latest_jpeg, fps):
			yield chunk

	async def snapshot_jpeg(self) -> Optional[bytes]:
		jpeg, _t = self.get_latest_jpeg()
		return jpeg


def encode_jpeg(rgb, quality: int = 80) -> bytes:
	"""Encode an RGB array to JPEG bytes (Pillow)."""
	from PIL import Image  # type: ignore

	buf = io.BytesIO()
	Image.fromarray(rgb).save(buf, format="JPEG", quality=int(quality))
	return buf.getvalue()


def get_frame_source(cfg: Optional[AppConfig] = None, *, backend_override: Optional[str] = None) -> FrameSource:
	cfg = cfg or get_config()
	backend = (backend_override or cfg.camera.backend or "opencv").strip().lower()
	if backend in ("picamera2", "pc2"):
		from bodymeasure.camera_backends.picamera2_backend import Picamera2FrameSource

		return Picamera2FrameSource(
			camera_index=int(cfg.camera.index),
			size=(int(cfg.camera.width), int(cfg.camera.height)),
			preview_fps=int(cfg.camera.preview_fps),
		)

	# Unknown backends fall back to a plain OpenCV webcam.
	from bodymeasure.camera_backends.opencv_backend import OpenCVFrameSource

	return OpenCVFrameSource(
		camera_index=int(cfg.camera.index),
		size=(int(cfg.camera.width), int(cfg.camera.height)),
		preview_fps=int(cfg.camera.preview_fps),
	)


async def mjpeg_from_latest(get_latest_jpeg_fn, fps: float) -> AsyncIterator[bytes]:
	"""
	Reusable MJPEG generator for sources that expose get_latest_jpeg().
	Yields full multipart chunks including boundary and headers.
	"""
	boundary = b"frame"
	last_t = None
	last_sent_mono = 0.0
	try:
		max_fps = float(fps)
	except Exception:
		max_fps = 15.0
	if not (max_fps > 0.0):
		max_fps = 15.0
	min_interval = 1.0 / max_fps

	while True:
		jpeg, t = get_latest_jpeg_fn()
		if jpeg is None or t is None:
			await asyncio.sleep(0.05)
			continue
		if last_t is not None and t == last_t:
			await asyncio.sleep(0.01)
			continue
		now_mono = time.monotonic()
		elapsed = now_mono - last_sent_mono
		if elapsed < min_interval:
			await asyncio.sleep(min_interval - elapsed)
			continue
		last_t = t
		last_sent_mono = time.monotonic()
		yield b"--" + boundary + b"\r\n"
		yield b"Content-Type: image/jpeg\r\n"
		yield b"Content-Length: " + str(len(jpeg)).encode("ascii") + b"\r\n\r\n"
		yield jpeg + b"\r\n"
