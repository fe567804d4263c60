"""WebSocket push of measurement updates. Route: /ws."""
import asyncio
import json
from typing import Any, Dict, Optional, Set

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

router = APIRouter(tags=["ws"])


def _encode(message: Dict[str, Any]) -> str:
	return json.dumps(message, separators=(",", ":"))


class MeasurementHub:
	"""
	Fan-out of pipeline events to connected browsers.

	A client gets its greeting (current status) before it can receive any
	broadcast, so updates never arrive ahead of the snapshot they follow.
	"""

	def __init__(self) -> None:
		self._clients: Set[WebSocket] = set()
		self._lock = asyncio.Lock()

	@property
	def client_count(self) -> int:
		return len(self._clients)

	async def join(self, websocket: WebSocket, greeting: Optional[Dict[str, Any]] = None) -> None:
		await websocket.accept()
		async with self._lock:
			if greeting is not None:
				await websocket.send_text(_encode(greeting))
			self._clients.add(websocket)

	async def leave(self, websocket: WebSocket) -> None:
		async with self._lock:
			self._clients.discard(websocket)

	async def publish(self, message: Dict[str, Any]) -> None:
		payload = _encode(message)
		async with self._lock:
			clients = list(self._clients)
			if not clients:
				return
			results = await asyncio.gather(*(ws.send_text(payload) for ws in clients), return_exceptions=True)
			# Sockets that failed to send are gone; the endpoint loop will notice too.
			for ws, res in zip(clients, results):
				if isinstance(res, Exception):
					self._clients.discard(ws)


def status_message(pipeline) -> Dict[str, Any]:
	latest = pipeline.latest
	return {
		"type": "status",
		"state": pipeline.state.value,
		"error": pipeline.error,
		"measurement": latest.to_dict() if latest is not None else None,
	}


def measurement_message(measurement) -> Dict[str, Any]:
	return {"type": "measurement", "measurement": measurement.to_dict()}


@router.websocket("/ws")
async def ws_endpoint(websocket: WebSocket):
	state = websocket.app.state.state
	hub, pipeline = state.hub, state.pipeline
	if hub is None:
		# Not started yet.
		await websocket.close(code=1013)
		return
	await hub.join(websocket, status_message(pipeline) if pipeline is not None else None)
	try:
		while True:
			await websocket.receive_text()
	except WebSocketDisconnect:
		pass
	finally:
		await hub.leave(websocket)
