"""Tests for MeasurementPipeline."""

import asyncio
import json
import math

from bodymeasure.config import AppConfig, load_config
from bodymeasure.measurement import PIXEL_TO_CM_RATIO, Measurement
from bodymeasure.pipeline import MeasurementPipeline, PipelineState
from fakes import (
	SCENARIO_A,
	FakeFrameSource,
	FakeProvider,
	direct_detect,
	failing_initializer,
	initializer_for,
	make_pose,
	without,
)


def _pipeline(provider, source=None, cfg=None, detector=direct_detect):
	return MeasurementPipeline(
		source if source is not None else FakeFrameSource.with_black_frame(),
		cfg or AppConfig(),
		initializer=initializer_for(provider),
		detector=detector,
	)


async def _ready(provider, **kwargs):
	p = _pipeline(provider, **kwargs)
	assert await p.initialize()
	return p


class TestInitialize:
	def test_ready_after_init(self):
		async def go():
			p = _pipeline(FakeProvider())
			assert p.state is PipelineState.UNINITIALIZED
			assert await p.initialize() is True
			return p

		p = asyncio.run(go())
		assert p.state is PipelineState.READY
		assert p.snapshot()["detector"] == "fake_provider"

	def test_initialization_error_is_terminal(self):
		async def go():
			p = MeasurementPipeline(
				FakeFrameSource.with_black_frame(),
				AppConfig(),
				initializer=failing_initializer,
				detector=direct_detect,
			)
			first = await p.initialize()
			second = await p.initialize()
			published = await p.tick()
			return p, first, second, published

		p, first, second, published = asyncio.run(go())
		assert first is False
		assert second is False
		assert published is False
		assert p.state is PipelineState.UNAVAILABLE
		assert "MediaPipe" in p.error
		assert p.snapshot()["state"] == "unavailable"
		assert p.counters["skipped_not_ready"] == 1

	def test_tick_before_init_is_noop(self):
		provider = FakeProvider([make_pose(SCENARIO_A)])

		async def go():
			p = _pipeline(provider)
			return p, await p.tick()

		p, published = asyncio.run(go())
		assert published is False
		assert provider.calls == 0
		assert p.latest is None


class TestTick:
	def test_publishes_measurement(self):
		provider = FakeProvider([make_pose(SCENARIO_A)])

		async def go():
			p = await _ready(provider)
			return p, await p.tick()

		p, published = asyncio.run(go())
		assert published is True
		assert p.latest == Measurement(height=132, shoulder_width=26, t_host=1000.0)
		assert p.counters["published"] == 1

	def test_no_frame_skips_detection(self):
		provider = FakeProvider([make_pose(SCENARIO_A)])

		async def go():
			p = await _ready(provider, source=FakeFrameSource(frame=None))
			return p, await p.tick()

		p, published = asyncio.run(go())
		assert published is False
		assert provider.calls == 0
		assert p.counters["no_frame"] == 1
		assert p.state is PipelineState.READY

	def test_missing_nose_keeps_previous(self):
		provider = FakeProvider([make_pose(SCENARIO_A)])

		async def go():
			p = await _ready(provider)
			await p.tick()
			before = p.latest
			provider.poses = [make_pose(without(SCENARIO_A, "nose"))]
			published = await p.tick()
			return p, before, published

		p, before, published = asyncio.run(go())
		assert published is False
		assert p.latest is before
		assert p.counters["no_subject"] == 1

	def test_empty_poses_keep_previous(self):
		provider = FakeProvider([make_pose(SCENARIO_A)])

		async def go():
			p = await _ready(provider)
			await p.tick()
			before = p.latest
			provider.poses = []
			published = await p.tick()
			return p, before, published

		p, before, published = asyncio.run(go())
		assert published is False
		assert p.latest is before

	def test_incomplete_primary_pose_no_fallback(self):
		provider = FakeProvider([make_pose(without(SCENARIO_A, "left_ankle")), make_pose(SCENARIO_A)])

		async def go():
			p = await _ready(provider)
			return p, await p.tick()

		p, published = asyncio.run(go())
		assert published is False
		assert p.latest is None

	def test_detection_error_is_absorbed(self):
		provider = FakeProvider([make_pose(SCENARIO_A)])

		async def broken(handle, frame):
			raise RuntimeError("inference crashed")

		async def go():
			p = await _ready(provider, detector=broken)
			published = await p.tick()
			return p, published

		p, published = asyncio.run(go())
		assert published is False
		assert p.counters["detect_errors"] == 1
		assert p.state is PipelineState.READY

	def test_ratio_ignores_config_file(self, tmp_path):
		provider = FakeProvider([make_pose(SCENARIO_A)])
		path = tmp_path / "config.json"
		path.write_text(json.dumps({"measurement": {"pixel_to_cm_ratio": 1.0}}), encoding="utf-8")
		cfg = load_config(path)

		async def go():
			p = await _ready(provider, cfg=cfg)
			await p.tick()
			return p

		p = asyncio.run(go())
		assert p.latest.height == 132
		assert p.latest.shoulder_width == 26
		assert p.snapshot()["pixel_to_cm_ratio"] == PIXEL_TO_CM_RATIO

	def test_non_finite_landmark_skips_tick(self):
		provider = FakeProvider([make_pose(SCENARIO_A)])

		async def go():
			p = await _ready(provider)
			await p.tick()
			before = p.latest
			provider.poses = [make_pose(dict(SCENARIO_A, nose=(150, math.nan)))]
			published = await p.tick()
			return p, before, published

		p, before, published = asyncio.run(go())
		assert published is False
		assert p.latest is before
		assert p.counters["no_subject"] == 1
		assert p.state is PipelineState.READY


class TestOverlap:
	def test_tick_while_detecting_is_skipped(self):
		"""A second tick must not start another detection call."""
		provider = FakeProvider([make_pose(SCENARIO_A)])
		calls = []

		async def go():
			gate = asyncio.Event()

			async def slow_detect(handle, frame):
				calls.append(frame)
				await gate.wait()
				return handle.infer_rgb(frame)

			p = await _ready(provider, detector=slow_detect)
			first = asyncio.create_task(p.tick())
			await asyncio.sleep(0)
			assert p.state is PipelineState.DETECTING
			second = await p.tick()
			gate.set()
			return p, await first, second

		p, first, second = asyncio.run(go())
		assert len(calls) == 1
		assert first is True
		assert second is False
		assert p.counters["skipped_busy"] == 1
		assert p.latest.height == 132
		assert p.state is PipelineState.READY


class TestListeners:
	def test_listener_receives_published(self):
		provider = FakeProvider([make_pose(SCENARIO_A)])
		seen = []

		async def go():
			p = await _ready(provider)
			p.add_listener(seen.append)
			await p.tick()
			provider.poses = []
			await p.tick()

		asyncio.run(go())
		assert [m.height for m in seen] == [132]

	def test_failing_listener_does_not_block_publish(self):
		provider = FakeProvider([make_pose(SCENARIO_A)])
		seen = []

		def broken(m):
			raise ValueError("boom")

		async def go():
			p = await _ready(provider)
			p.add_listener(broken)
			p.add_listener(seen.append)
			await p.tick()
			p.remove_listener(broken)
			p.remove_listener(broken)
			return p

		p = asyncio.run(go())
		assert p.latest is not None
		assert len(seen) == 1
