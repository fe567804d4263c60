from __future__ import annotations

import logging
import threading
import time
from typing import Any, Dict, Optional

from bodymeasure.camera import FrameSource, encode_jpeg

logger = logging.getLogger(__name__)


class OpenCVFrameSource(FrameSource):
	"""
	Webcam capture via `cv2.VideoCapture`.

	A daemon thread keeps only the newest frame (converted BGR -> RGB).
	Capture errors are recorded in get_status()["error"], never raised.
	"""

	def __init__(self, camera_index: int = 0, size: tuple[int, int] = (640, 480), preview_fps: int = 15) -> None:
		self._lock = threading.Lock()
		self._camera_index = int(camera_index)
		self._size = (int(size[0]), int(size[1]))
		self._preview_fps = int(preview_fps) if int(preview_fps) > 0 else 15

		self._running = False
		self._last_error: Optional[str] = None
		self._frames_captured = 0

		self._latest_rgb = None
		self._latest_t_host: Optional[float] = None
		# JPEG is encoded lazily and cached for the frame it was built from.
		self._jpeg: Optional[bytes] = None
		self._jpeg_t_host: Optional[float] = None

		self._thread: Optional[threading.Thread] = None

	def name(self) -> str:
		return "opencv"

	def get_status(self) -> Dict[str, Any]:
		with self._lock:
			return {
				"backend": self.name(),
				"camera_index": self._camera_index,
				"running": bool(self._running),
				"has_frame": self._latest_rgb is not None,
				"t_last_frame": self._latest_t_host,
				"frames_captured": int(self._frames_captured),
				"size": [int(self._size[0]), int(self._size[1])],
				"preview_fps": int(self._preview_fps),
				"error": self._last_error,
			}

	def start(self) -> None:
		with self._lock:
			if self._running:
				return
			self._running = True
			self._last_error = None

		t = threading.Thread(target=self._run_loop, name="opencv-capture", daemon=True)
		self._thread = t
		t.start()

	def stop(self) -> None:
		with self._lock:
			self._running = False
		t = self._thread
		if t and t.is_alive():
			t.join(timeout=2.0)
		self._thread = None

	def _is_running(self) -> bool:
		with self._lock:
			return self._running

	def _fail(self, msg: str) -> None:
		logger.warning("[opencv] %s", msg)
		with self._lock:
			self._last_error = msg
			self._running = False

	def _run_loop(self) -> None:
		try:
			import cv2  # type: ignore
		except Exception as e:
			self._fail(f"OpenCV import failed: {e!r}. Install `opencv-python` (pip).")
			return

		cap = cv2.VideoCapture(self._camera_index)
		try:
			if not cap.isOpened():
				self._fail(f"Could not open camera index {self._camera_index}")
				return
			w, h = self._size
			cap.set(cv2.CAP_PROP_FRAME_WIDTH, float(w))
			cap.set(cv2.CAP_PROP_FRAME_HEIGHT, float(h))

			misses = 0
			while self._is_running():
				ok, bgr = cap.read()
				if not ok or bgr is None:
					misses += 1
					if misses >= 50:
						self._fail("Camera stopped delivering frames")
						return
					time.sleep(0.02)
					continue
				misses = 0
				if bgr.shape[1] != w or bgr.shape[0] != h:
					bgr = cv2.resize(bgr, (w, h))
				rgb = cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)
				with self._lock:
					self._latest_rgb = rgb
					self._latest_t_host = time.time()
					self._frames_captured += 1
		finally:
			cap.release()

	def get_latest_frame(self) -> tuple[Optional[Any], Optional[float]]:
		with self._lock:
			return self._latest_rgb, self._latest_t_host

	def get_latest_jpeg(self) -> tuple[Optional[bytes], Optional[float]]:
		with self._lock:
			rgb = self._latest_rgb
			t = self._latest_t_host
			if rgb is None or t is None:
				return None, None
			if self._jpeg is not None and self._jpeg_t_host == t:
				return self._jpeg, t
		jpeg = encode_jpeg(rgb)
		with self._lock:
			self._jpeg = jpeg
			self._jpeg_t_host = t
		return jpeg, t
