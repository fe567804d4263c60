"""
Body measurement service.

Run with `uvicorn server:app` (or `python server.py`). The lifespan owns the
camera, the measurement pipeline and its sampling ticker; routes only read
the published state.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app_state import AppState
from bodymeasure.camera import FrameSource, get_frame_source
from bodymeasure.config import AppConfig, get_config
from bodymeasure.measurement import Measurement
from bodymeasure.periodic import PeriodicTask
from bodymeasure.pipeline import MeasurementPipeline
from routers import measurement as measurement_router
from routers import video as video_router
from routers import ws as ws_router

logger = logging.getLogger(__name__)


def _broadcast(hub: ws_router.MeasurementHub, message: dict) -> None:
	"""
	Fire-and-forget broadcast to all WebSocket clients; safe from sync callbacks.
	"""
	try:
		asyncio.get_running_loop().create_task(hub.publish(message))
	except RuntimeError:
		# No running loop (shutdown); nothing to notify.
		pass


def create_app(
	cfg: Optional[AppConfig] = None,
	*,
	frame_source: Optional[FrameSource] = None,
	**pipeline_kwargs: Any,
) -> FastAPI:
	"""
	Build the FastAPI app. `frame_source` and `pipeline_kwargs` (initializer,
	detector) are injection points for tests.
	"""
	cfg = cfg or get_config()

	@asynccontextmanager
	async def lifespan(app: FastAPI):
		state = AppState()
		state.cfg = cfg
		state.hub = ws_router.MeasurementHub()
		state.camera = frame_source or get_frame_source(cfg)
		state.pipeline = MeasurementPipeline(state.camera, cfg, **pipeline_kwargs)
		app.state.state = state

		def _on_measurement(m: Measurement) -> None:
			_broadcast(state.hub, ws_router.measurement_message(m))

		state.pipeline.add_listener(_on_measurement)

		async def _init_detector() -> None:
			ok = await state.pipeline.initialize()
			if not ok:
				# Surface the failure once so the UI can show "unavailable".
				_broadcast(state.hub, ws_router.status_message(state.pipeline))

		state.camera.start()
		state.sampler = PeriodicTask(
			state.pipeline.tick,
			cfg.measurement.sample_interval_seconds,
			name="measure",
		)
		logger.info(
			"Starting camera=%s, sampling every %.3fs",
			state.camera.name(),
			cfg.measurement.sample_interval_seconds,
		)
		try:
			async with state.sampler:
				# Model load can be slow; ticks are no-ops until it finishes.
				state.init_task = asyncio.create_task(_init_detector())
				yield
		finally:
			if state.init_task is not None and not state.init_task.done():
				state.init_task.cancel()
				try:
					await state.init_task
				except asyncio.CancelledError:
					pass
			state.init_task = None
			state.sampler = None
			try:
				state.camera.stop()
			except Exception:
				logger.exception("Camera stop failed")

	app = FastAPI(title="Body Measurement", lifespan=lifespan)
	app.add_middleware(
		CORSMiddleware,
		allow_origins=["*"],
		allow_credentials=True,
		allow_methods=["*"],
		allow_headers=["*"],
	)
	# Routes answer 503 until lifespan has populated this.
	app.state.state = AppState()
	app.include_router(measurement_router.router)
	app.include_router(video_router.router)
	app.include_router(ws_router.router)
	return app


app = create_app()


def main() -> None:
	import uvicorn

	logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(name)s:%(message)s")
	uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
	main()
