"""Concrete FrameSource implementations (imported lazily by get_frame_source)."""
