from __future__ import annotations

import logging
import threading
import time
from typing import Any, Dict, Optional

from bodymeasure.camera import FrameSource, encode_jpeg

logger = logging.getLogger(__name__)


class Picamera2FrameSource(FrameSource):
	"""
	Picamera2/libcamera frame source for Raspberry Pi CSI cameras.

	Notes:
	- `python3-picamera2` is a system package on Raspberry Pi OS (apt).
	- libcamera's "BGR888" format is laid out [R, G, B] per pixel, which is
	  what the pose model wants, so no channel swap is needed.
	- JPEG preview encoding uses Pillow, throttled to preview_fps.
	"""

	def __init__(self, camera_index: Optional[int] = None, size: tuple[int, int] = (640, 480), preview_fps: int = 15) -> None:
		self._lock = threading.Lock()
		self._camera_index: Optional[int] = int(camera_index) if camera_index is not None else None
		self._size = (int(size[0]), int(size[1]))
		self._preview_fps = int(preview_fps) if int(preview_fps) > 0 else 15

		self._running = False
		self._last_error: Optional[str] = None
		self._frames_captured = 0

		self._latest_rgb = None
		self._latest_t_host: Optional[float] = None
		self._latest_jpeg: Optional[bytes] = None
		self._latest_jpeg_t_host: Optional[float] = None
		self._last_preview_encode_t: float = 0.0

		self._thread: Optional[threading.Thread] = None

	def name(self) -> str:
		return "picamera2"

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

		t = threading.Thread(target=self._run_loop, name="picamera2-capture", daemon=True)
		self._thread = t
		t.start()

	def stop(self) -> None:
		with self._lock:
			self._running = False
		t = self._thread
		if t and t.is_alive():
			t.join(timeout=2.0)
		self._thread = None

	def _fail(self, msg: str) -> None:
		logger.warning("[picamera2] %s", msg)
		with self._lock:
			self._last_error = msg
			self._running = False

	def _run_loop(self) -> None:
		try:
			from picamera2 import Picamera2  # type: ignore
		except Exception as e:
			import sys
			self._fail(
				f"Picamera2 import failed: {e!r}. "
				f"Python={sys.executable!r}. "
				"Common cause: the venv does NOT include system site-packages, "
				"so the apt-installed `python3-picamera2` is not visible. "
				"Fix: recreate venv with `python3 -m venv --system-site-packages <venv>`."
			)
			return

		try:
			try:
				infos = Picamera2.global_camera_info()  # type: ignore[attr-defined]
			except Exception:
				infos = None
			if self._camera_index is None:
				picam2 = Picamera2()
			else:
				if isinstance(infos, list) and len(infos) == 0:
					raise IndexError("no cameras detected (global_camera_info empty)")
				if isinstance(infos, list) and int(self._camera_index) >= len(infos):
					raise IndexError(f"camera_index={int(self._camera_index)} out of range (found {len(infos)} camera(s))")
				picam2 = Picamera2(camera_num=int(self._camera_index))
		except Exception as e:
			self._fail(f"Picamera2 init failed: {e!r}")
			return

		try:
			w, h = self._size
			cfg = picam2.create_video_configuration(main={"size": (int(w), int(h)), "format": "BGR888"})
			picam2.configure(cfg)
			picam2.start()
		except Exception as e:
			self._fail(f"Picamera2 start failed: {e!r}")
			try:
				picam2.close()
			except Exception:
				pass
			return

		try:
			while True:
				with self._lock:
					if not self._running:
						break
				try:
					rgb = picam2.capture_array("main")
				except Exception as e:
					self._fail(f"capture_array failed: {e!r}")
					break
				now = time.time()
				with self._lock:
					self._latest_rgb = rgb
					self._latest_t_host = now
					self._frames_captured += 1
					do_preview = (now - self._last_preview_encode_t) >= 1.0 / max(1.0, float(self._preview_fps))
					if do_preview:
						self._last_preview_encode_t = now
				if do_preview:
					try:
						jpg = encode_jpeg(rgb)
						with self._lock:
							self._latest_jpeg = jpg
							self._latest_jpeg_t_host = now
					except Exception:
						# Keep preview best-effort; don't kill capture on encode errors.
						pass
		finally:
			try:
				picam2.stop()
			except Exception:
				pass
			try:
				picam2.close()
			except Exception:
				pass

	def get_latest_frame(self) -> tuple[Optional[Any], Optional[float]]:
		with self._lock:
			return self._latest_rgb, self._latest_t_host

	def get_latest_jpeg(self) -> tuple[Optional[bytes], Optional[float]]:
		with self._lock:
			return self._latest_jpeg, self._latest_jpeg_t_host
