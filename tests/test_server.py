"""Tests for the HTTP/WebSocket surface."""

import threading
import time

from fastapi.testclient import TestClient

from bodymeasure.config import AppConfig, MeasurementConfig
from server import create_app
from fakes import (
	SCENARIO_A,
	FakeFrameSource,
	FakeProvider,
	direct_detect,
	failing_initializer,
	gated,
	initializer_for,
	make_pose,
)

FAST = AppConfig(measurement=MeasurementConfig(sample_interval_seconds=0.01))


def _wait_for(client, predicate, timeout=3.0):
	deadline = time.monotonic() + timeout
	body = client.get("/measurement").json()
	while not predicate(body) and time.monotonic() < deadline:
		time.sleep(0.02)
		body = client.get("/measurement").json()
	return body


def _app(source, provider=None, initializer=None):
	return create_app(
		FAST,
		frame_source=source,
		initializer=initializer or initializer_for(provider),
		detector=direct_detect,
	)


class TestMeasurementRoutes:
	def test_not_ready_before_startup(self):
		app = _app(FakeFrameSource(), FakeProvider())
		client = TestClient(app)

		assert client.get("/measurement").status_code == 503

	def test_publishes_measurement(self):
		source = FakeFrameSource.with_black_frame()
		app = _app(source, FakeProvider([make_pose(SCENARIO_A)]))

		with TestClient(app) as client:
			assert source.started
			body = _wait_for(client, lambda b: b["measurement"] is not None)

			assert body["state"] in ("ready", "detecting")
			assert body["measurement"]["height"] == 132
			assert body["measurement"]["shoulder_width"] == 26
			assert body["error"] is None

			status = client.get("/status").json()
			assert status["detector"] == "fake_provider"
			assert status["counters"]["published"] >= 1
			assert status["camera"]["backend"] == "fake"
			assert status["pixel_to_cm_ratio"] == 0.264583

		assert source.stopped

	def test_no_subject_stays_empty(self):
		app = _app(FakeFrameSource.with_black_frame(), FakeProvider([]))

		with TestClient(app) as client:
			body = _wait_for(client, lambda b: b["state"] != "uninitialized")
			time.sleep(0.1)

			assert client.get("/measurement").json()["measurement"] is None
			assert client.get("/status").json()["counters"]["no_subject"] >= 1

	def test_unavailable_detector(self):
		app = _app(FakeFrameSource.with_black_frame(), initializer=failing_initializer)

		with TestClient(app) as client:
			body = _wait_for(client, lambda b: b["state"] == "unavailable")

			assert body["state"] == "unavailable"
			assert "MediaPipe" in body["error"]
			assert body["measurement"] is None


class TestVideoRoutes:
	def test_snapshot_missing(self):
		app = _app(FakeFrameSource(frame=None), FakeProvider())

		with TestClient(app) as client:
			assert client.get("/video/snapshot.jpg").status_code == 404
			assert client.get("/video/status").json()["has_frame"] is False

	def test_snapshot(self):
		app = _app(FakeFrameSource.with_black_frame(), FakeProvider())

		with TestClient(app) as client:
			resp = client.get("/video/snapshot.jpg")

			assert resp.status_code == 200
			assert resp.headers["content-type"] == "image/jpeg"
			assert resp.content.startswith(b"\xff\xd8")


class TestWebSocket:
	def test_status_on_connect(self):
		app = _app(FakeFrameSource(frame=None), FakeProvider())

		with TestClient(app) as client:
			with client.websocket_connect("/ws") as ws:
				msg = ws.receive_json()

		assert msg["type"] == "status"
		assert msg["measurement"] is None
		assert "state" in msg

	def test_measurement_pushed_after_status(self):
		source = FakeFrameSource.with_black_frame()
		app = _app(source, FakeProvider([make_pose(SCENARIO_A)]))

		with TestClient(app) as client:
			with client.websocket_connect("/ws") as ws:
				first = ws.receive_json()
				second = ws.receive_json()

		assert first["type"] == "status"
		assert second["type"] == "measurement"
		assert second["measurement"]["height"] == 132
		assert second["measurement"]["shoulder_width"] == 26

	def test_unavailable_status_pushed(self):
		gate = threading.Event()
		app = _app(FakeFrameSource.with_black_frame(), initializer=gated(failing_initializer, gate))

		with TestClient(app) as client:
			with client.websocket_connect("/ws") as ws:
				first = ws.receive_json()
				gate.set()
				second = ws.receive_json()

		assert first["type"] == "status"
		assert first["state"] == "uninitialized"
		assert second["type"] == "status"
		assert second["state"] == "unavailable"
		assert "MediaPipe" in second["error"]
		assert second["measurement"] is None
