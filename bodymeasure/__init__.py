"""
Body measurement application package.

Estimates standing height and shoulder width from a live camera feed using a
2D pose keypoint detector and a fixed pixel-to-centimeter scale.
"""

from pathlib import Path


def _read_version() -> str:
	try:
		vf = Path(__file__).resolve().parents[1] / "VERSION"
		if vf.exists():
			val = vf.read_text(encoding="utf-8").strip()
			if val:
				return val
	except Exception:
		pass
	return "0.1.0"


__version__ = _read_version()
