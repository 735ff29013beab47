"""Wall-clock access. Every time-dependent function accepts an injected ``now``."""

import time


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def resolve_now(now: int | None) -> int:
    return now_ms() if now is None else now
