# petaboo/core/clock.py
import time
from typing import Optional


def now_ms() -> int:
    """Текущее время в миллисекундах Unix epoch."""
    return int(time.time() * 1000)


def next_version(previous: Optional[int]) -> int:
    """
    Новое значение updated_at для строки.
    Строго больше предыдущего, даже если запись пришла в ту же миллисекунду.
    """
    now = now_ms()
    if previous is not None and now <= previous:
        return previous + 1
    return now
