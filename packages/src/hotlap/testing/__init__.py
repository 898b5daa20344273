"""Public test-support utilities for hotlap.

Re-exports test doubles and factories so that test suites can import
everything from a single ``hotlap.testing`` namespace.

Provided symbols:

- :class:`FakeClock` — deterministic clock for timing tests.
- :class:`MemoryGateway` — in-memory reference storage.
- :class:`ScriptedKeys` — key source replaying a fixed script.
- :class:`RecordingDisplay` — display that records every frame.
- :func:`make_settings` — factory for ``Settings`` without ``.env`` files.
"""

from hotlap.testing._clock import FakeClock
from hotlap.testing._gateway import MemoryGateway
from hotlap.testing._ports import RecordingDisplay, ScriptedKeys
from hotlap.testing._settings import make_settings

__all__ = [
    "FakeClock",
    "MemoryGateway",
    "RecordingDisplay",
    "ScriptedKeys",
    "make_settings",
]
