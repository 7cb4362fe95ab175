# ABOUTME: Epoch-millisecond timestamps used for all stored and reported times.
# ABOUTME: A single seam so tests can pass explicit times instead of patching time.

import time


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)
