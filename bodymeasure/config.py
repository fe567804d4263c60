from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class CameraConfig:
	backend: str = "opencv"  # opencv / picamera2
	# Device index for OpenCV, camera_num for Picamera2.
	index: int = 0
	width: int = 640
	height: int = 480
	# Upper bound for the browser MJPEG preview.
	preview_fps: int = 15


@dataclass(frozen=True)
class DetectorConfig:
	backend: str = "mediapipe"
	min_detection_confidence: float = 0.5
	min_tracking_confidence: float = 0.5


@dataclass(frozen=True)
class MeasurementConfig:
	sample_interval_seconds: float = 0.1


@dataclass(frozen=True)
class AppConfig:
	camera: CameraConfig = field(default_factory=CameraConfig)
	detector: DetectorConfig = field(default_factory=DetectorConfig)
	measurement: MeasurementConfig = field(default_factory=MeasurementConfig)


_CONFIG_CACHE: Optional[AppConfig] = None


def _repo_root() -> Path:
	# bodymeasure/config.py -> repo root is one level up.
	return Path(__file__).resolve().parents[1]


def get_default_config_path() -> Path:
	return _repo_root() / "config.json"


def _deep_get(d: Dict[str, Any], keys: list[str], default: Any = None) -> Any:
	cur: Any = d
	for k in keys:
		if not isinstance(cur, dict):
			return default
		cur = cur.get(k)
	return cur if cur is not None else default


def _as_int(v: Any, default: int) -> int:
	try:
		return int(v)
	except Exception:
		return int(default)


def _as_str(v: Any, default: str = "") -> str:
	return str(v) if v is not None else str(default)


def _as_float(v: Any, default: float) -> float:
	try:
		return float(v)
	except Exception:
		return float(default)


def load_config(path: Optional[str | Path] = None) -> AppConfig:
	p = Path(path).expanduser().resolve() if path else get_default_config_path()
	if not p.exists():
		# Defaults-only config; app can still run.
		return AppConfig()
	try:
		raw = json.loads(p.read_text(encoding="utf-8"))
	except Exception:
		# If config is malformed, fail safe to defaults (but keep app running).
		return AppConfig()

	if not isinstance(raw, dict):
		return AppConfig()

	cam_backend = _as_str(_deep_get(raw, ["camera", "backend"], "opencv"), "opencv").strip().lower()
	cam_index = _as_int(_deep_get(raw, ["camera", "index"], 0), 0)
	cam_w = _as_int(_deep_get(raw, ["camera", "width"], 640), 640)
	cam_h = _as_int(_deep_get(raw, ["camera", "height"], 480), 480)
	cam_fps = _as_int(_deep_get(raw, ["camera", "preview_fps"], 15), 15)

	det_backend = _as_str(_deep_get(raw, ["detector", "backend"], "mediapipe"), "mediapipe").strip().lower()
	det_min_det = _as_float(_deep_get(raw, ["detector", "min_detection_confidence"], 0.5), 0.5)
	det_min_trk = _as_float(_deep_get(raw, ["detector", "min_tracking_confidence"], 0.5), 0.5)

	interval = _as_float(_deep_get(raw, ["measurement", "sample_interval_seconds"], 0.1), 0.1)

	return AppConfig(
		camera=CameraConfig(
			backend=cam_backend or "opencv",
			# NOTE: camera index 0 is valid; only negatives fall back.
			index=int(cam_index) if int(cam_index) >= 0 else 0,
			width=int(cam_w) if int(cam_w) > 0 else 640,
			height=int(cam_h) if int(cam_h) > 0 else 480,
			preview_fps=int(cam_fps) if int(cam_fps) > 0 else 15,
		),
		detector=DetectorConfig(
			backend=det_backend or "mediapipe",
			min_detection_confidence=min(1.0, max(0.0, float(det_min_det))),
			min_tracking_confidence=min(1.0, max(0.0, float(det_min_trk))),
		),
		measurement=MeasurementConfig(
			sample_interval_seconds=float(interval) if float(interval) > 0.0 else 0.1,
		),
	)


def get_config() -> AppConfig:
	global _CONFIG_CACHE
	if _CONFIG_CACHE is None:
		_CONFIG_CACHE = load_config()
	return _CONFIG_CACHE
