"""Tests for EventDispatcher."""

import asyncio

from unifi_controller.api.dispatcher import EventDispatcher
from unifi_controller.models import ControllerEvent, classify_event


def _event(name: str = "EVT_WU_Connected") -> ControllerEvent:
    return classify_event(name, {"key": name})


class TestEventDispatcher:
    def test_named_subscriber_only_gets_its_events(self) -> None:
        dispatcher = EventDispatcher()
        received = []
        dispatcher.subscribe(received.append, name="EVT_WU_Connected")

        asyncio.run(dispatcher.emit(_event("EVT_WU_Connected")))
        asyncio.run(dispatcher.emit(_event("EVT_WU_Disconnected")))

        assert [e.name for e in received] == ["EVT_WU_Connected"]

    def test_wildcard_subscriber_gets_everything(self) -> None:
        dispatcher = EventDispatcher()
        received = []
        dispatcher.subscribe(received.append)

        asyncio.run(dispatcher.emit(_event("EVT_WU_Connected")))
        asyncio.run(dispatcher.emit(_event("device.sync")))

        assert [e.name for e in received] == ["EVT_WU_Connected", "device.sync"]

    def test_async_subscriber_awaited(self) -> None:
        dispatcher = EventDispatcher()
        received = []

        async def on_event(event: ControllerEvent) -> None:
            await asyncio.sleep(0)
            received.append(event.name)

        dispatcher.subscribe(on_event)

        delivered = asyncio.run(dispatcher.emit(_event()))

        assert delivered == 1
        assert received == ["EVT_WU_Connected"]

    def test_unsubscribe(self) -> None:
        dispatcher = EventDispatcher()
        received = []
        unsubscribe = dispatcher.subscribe(received.append)

        unsubscribe()
        unsubscribe()  # second call is a no-op
        delivered = asyncio.run(dispatcher.emit(_event()))

        assert delivered == 0
        assert received == []

    def test_failing_subscriber_does_not_block_others(self) -> None:
        dispatcher = EventDispatcher()
        received = []

        def broken(event: ControllerEvent) -> None:
            raise RuntimeError("boom")

        dispatcher.subscribe(broken)
        dispatcher.subscribe(received.append)

        delivered = asyncio.run(dispatcher.emit(_event()))

        assert delivered == 1
        assert len(received) == 1

    def test_subscriber_count(self) -> None:
        dispatcher = EventDispatcher()
        dispatcher.subscribe(print)
        dispatcher.subscribe(print, name="device.sync")

        assert dispatcher.subscriber_count("device.sync") == 2
        assert dispatcher.subscriber_count("sta.sync") == 1
