# petaboo/services/realtime.py
import asyncio
import logging
from typing import Any, Callable, Optional

from petaboo.core.events import EventBus

logger = logging.getLogger("Petaboo.Realtime")


async def wait_for_event(
    bus: EventBus,
    event: str,
    predicate: Callable[[Any], bool],
    timeout: float,
) -> Optional[Any]:
    """
    Wait until ``event`` is emitted with a payload accepted by ``predicate``.

    Returns the payload, or ``None`` once ``timeout`` seconds pass. Emitters
    usually run in threadpool workers, so the payload is handed to the loop
    with ``call_soon_threadsafe``. The listener is always unregistered.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future = loop.create_future()

    def _resolve(payload: Any) -> None:
        if not future.done():
            future.set_result(payload)

    def _listener(payload: Any) -> None:
        if predicate(payload):
            loop.call_soon_threadsafe(_resolve, payload)

    bus.on(event, _listener)
    try:
        return await asyncio.wait_for(future, timeout=timeout)
    except asyncio.TimeoutError:
        logger.debug(f"No '{event}' event within {timeout}s")
        return None
    finally:
        bus.off(event, _listener)
