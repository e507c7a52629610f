import unittest

from ccwatch.events import EventBus
from ccwatch.models import MessagesChanged, SessionsChanged


class EventBusTests(unittest.IsolatedAsyncioTestCase):
    async def test_handlers_receive_only_their_event_type(self) -> None:
        bus = EventBus()
        received: list = []
        bus.subscribe(MessagesChanged, received.append)

        await bus.publish(MessagesChanged(sessionId="s1"))
        await bus.publish(SessionsChanged())

        self.assertEqual(received, [MessagesChanged(sessionId="s1")])

    async def test_unsubscribe_stops_delivery_and_is_idempotent(self) -> None:
        bus = EventBus()
        received: list = []
        unsubscribe = bus.subscribe(MessagesChanged, received.append)

        unsubscribe()
        unsubscribe()
        await bus.publish(MessagesChanged(sessionId="s1"))

        self.assertEqual(received, [])
        self.assertEqual(bus.subscriber_count(MessagesChanged), 0)

    async def test_async_handlers_are_awaited(self) -> None:
        bus = EventBus()
        received: list = []

        async def handler(event) -> None:
            received.append(event.sessionId)

        bus.subscribe(MessagesChanged, handler)
        await bus.publish(MessagesChanged(sessionId="s2"))

        self.assertEqual(received, ["s2"])

    async def test_failing_handler_does_not_block_others(self) -> None:
        bus = EventBus()
        received: list = []

        def broken(event) -> None:
            raise RuntimeError("boom")

        bus.subscribe(MessagesChanged, broken)
        bus.subscribe(MessagesChanged, received.append)

        with self.assertLogs("ccwatch.events", level="ERROR"):
            await bus.publish(MessagesChanged(sessionId="s3"))

        self.assertEqual(len(received), 1)


if __name__ == "__main__":
    unittest.main()
