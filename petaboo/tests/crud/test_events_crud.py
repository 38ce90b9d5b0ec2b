import asyncio
import threading

from petaboo.core.events import EventBus, TeamEvents
from petaboo.services.realtime import wait_for_event


def test_emit_reaches_every_listener():
    bus = EventBus()
    received = []
    bus.on(TeamEvents.NEW_APPLICATION, lambda data: received.append(("a", data)))
    bus.on(TeamEvents.NEW_APPLICATION, lambda data: received.append(("b", data)))

    delivered = bus.emit(TeamEvents.NEW_APPLICATION, {"team_id": 1})

    assert delivered == 2
    assert received == [("a", {"team_id": 1}), ("b", {"team_id": 1})]


def test_failing_listener_does_not_stop_others(caplog):
    bus = EventBus()
    received = []

    def broken(data):
        raise RuntimeError("listener blew up")

    bus.on(TeamEvents.NEW_APPLICATION, broken)
    bus.on(TeamEvents.NEW_APPLICATION, received.append)

    delivered = bus.emit(TeamEvents.NEW_APPLICATION, {"team_id": 1})

    assert delivered == 1
    assert received == [{"team_id": 1}]
    assert "listener blew up" in caplog.text


def test_off_and_late_listeners():
    bus = EventBus()
    received = []
    bus.emit(TeamEvents.NEW_APPLICATION, {"team_id": 1})

    bus.on(TeamEvents.NEW_APPLICATION, received.append)
    assert received == []
    assert bus.listener_count(TeamEvents.NEW_APPLICATION) == 1

    bus.off(TeamEvents.NEW_APPLICATION, received.append)
    bus.off(TeamEvents.NEW_APPLICATION, received.append)
    assert bus.emit(TeamEvents.NEW_APPLICATION, {"team_id": 2}) == 0
    assert bus.listener_count(TeamEvents.NEW_APPLICATION) == 0


def test_remove_all_listeners_and_shutdown():
    bus = EventBus()
    bus.on(TeamEvents.NEW_APPLICATION, lambda data: None)
    bus.on(TeamEvents.APPLICATION_APPROVED, lambda data: None)

    bus.remove_all_listeners(TeamEvents.NEW_APPLICATION)
    assert bus.listener_count(TeamEvents.NEW_APPLICATION) == 0
    assert bus.listener_count(TeamEvents.APPLICATION_APPROVED) == 1

    bus.shutdown()
    assert bus.listener_count(TeamEvents.APPLICATION_APPROVED) == 0


def test_wait_for_event_receives_matching_payload_from_thread():
    bus = EventBus()

    def emit_later():
        bus.emit(TeamEvents.NEW_APPLICATION, {"team_id": 2})
        bus.emit(TeamEvents.NEW_APPLICATION, {"team_id": 1, "request_id": 5})

    async def scenario():
        timer = threading.Timer(0.05, emit_later)
        timer.start()
        try:
            return await wait_for_event(
                bus, TeamEvents.NEW_APPLICATION, lambda data: data["team_id"] == 1, timeout=2
            )
        finally:
            timer.join()

    payload = asyncio.run(scenario())

    assert payload == {"team_id": 1, "request_id": 5}
    assert bus.listener_count(TeamEvents.NEW_APPLICATION) == 0


def test_wait_for_event_times_out():
    bus = EventBus()

    payload = asyncio.run(
        wait_for_event(bus, TeamEvents.NEW_APPLICATION, lambda data: True, timeout=0.05)
    )

    assert payload is None
    assert bus.listener_count(TeamEvents.NEW_APPLICATION) == 0
