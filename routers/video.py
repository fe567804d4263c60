"""Camera preview routes. Routes: /video/status, mjpeg, snapshot.jpg."""
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response, StreamingResponse

from app_state import AppState
from deps import get_state

router = APIRouter(tags=["video"])


def _camera(state: AppState):
	if state.camera is None:
		raise HTTPException(status_code=503, detail="Camera not ready")
	return state.camera


@router.get("/video/status")
async def video_status(state: AppState = Depends(get_state)):
	return _camera(state).get_status()


@router.get("/video/mjpeg")
async def video_mjpeg(fps: float = 15.0, state: AppState = Depends(get_state)):
	"""Live MJPEG stream from the active camera."""
	return StreamingResponse(
		_camera(state).mjpeg_stream(fps=float(fps)),
		media_type="multipart/x-mixed-replace; boundary=frame",
		headers={
			"Cache-Control": "no-store, no-cache, must-revalidate, max-age=0",
			"Pragma": "no-cache",
			"Connection": "keep-alive",
		},
	)


@router.get("/video/snapshot.jpg")
async def video_snapshot(state: AppState = Depends(get_state)):
	"""Return a single latest JPEG frame."""
	jpeg = await _camera(state).snapshot_jpeg()
	if jpeg is None:
		raise HTTPException(status_code=404, detail="No JPEG frame available yet")
	return Response(
		content=jpeg,
		media_type="image/jpeg",
		headers={
			"Cache-Control": "no-store, no-cache, must-revalidate, max-age=0",
			"Pragma": "no-cache",
		},
	)
