from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set

logger = logging.getLogger(__name__)


class PeriodicTask:
	"""
	Cancelable fixed-period job on the running event loop.

	Each tick launches `callback()` as its own task, on a wall-clock schedule
	that does not wait for earlier callbacks to finish. Callers that must not
	overlap guard themselves (see MeasurementPipeline.tick).

	Usage:
		async with PeriodicTask(pipeline.tick, 0.1, name="measure"):
			...
	"""

	def __init__(self, callback: Callable[[], Awaitable[object]], interval_s: float, name: str = "periodic") -> None:
		if not (float(interval_s) > 0.0):
			raise ValueError("interval_s must be > 0")
		self._callback = callback
		self._interval_s = float(interval_s)
		self._name = str(name or "periodic")
		self._ticker: Optional[asyncio.Task] = None
		self._inflight: Set[asyncio.Task] = set()
		self.ticks = 0

	@property
	def running(self) -> bool:
		return self._ticker is not None and not self._ticker.done()

	def start(self) -> None:
		if self.running:
			return
		self._ticker = asyncio.create_task(self._run(), name=f"{self._name}-ticker")

	def fire(self) -> asyncio.Task:
		"""Trigger one tick now (manual clock)."""
		self.ticks += 1
		t = asyncio.create_task(self._invoke(), name=f"{self._name}-tick-{self.ticks}")
		self._inflight.add(t)
		t.add_done_callback(self._inflight.discard)
		return t

	async def _invoke(self) -> None:
		try:
			await self._callback()
		except asyncio.CancelledError:
			raise
		except Exception:
			# One failed tick must not stop the schedule.
			logger.exception("[%s] tick failed", self._name)

	async def _run(self) -> None:
		loop = asyncio.get_running_loop()
		next_t = loop.time()
		while True:
			self.fire()
			next_t += self._interval_s
			delay = next_t - loop.time()
			if delay < 0.0:
				# Fell behind (slow loop); re-anchor instead of bursting.
				next_t = loop.time()
				delay = 0.0
			await asyncio.sleep(delay)

	async def cancel(self) -> None:
		ticker = self._ticker
		self._ticker = None
		tasks = list(self._inflight)
		if ticker is not None:
			tasks.append(ticker)
		for t in tasks:
			t.cancel()
		for t in tasks:
			try:
				await t
			except asyncio.CancelledError:
				pass
			except Exception:
				pass
		self._inflight.clear()

	async def __aenter__(self) -> "PeriodicTask":
		self.start()
		return self

	async def __aexit__(self, exc_type, exc, tb) -> None:
		await self.cancel()
