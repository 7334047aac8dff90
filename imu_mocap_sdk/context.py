"""
Per-service runtime context shared by the session manager, the calibration
engine and the dispatch loop. One instance per MotionCaptureService; nothing
here is module-global, so independent services (and tests) never share state.
"""

import queue
import time
from dataclasses import dataclass, field
from typing import Callable


@dataclass
class CaptureContext:
    """
    Attributes:
        clock: Monotonic time source in seconds. Tests inject a manual clock.
        events: Ordered channel from the session reader threads to the
            single dispatch loop.
    """
    clock: Callable[[], float] = time.monotonic
    events: "queue.Queue" = field(default_factory=queue.Queue)

    def now(self) -> float:
        return self.clock()
