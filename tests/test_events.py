import asyncio

from issuecache.events import DataUpdated, EventChannel


def test_publish_reaches_subscribers_in_order():
    async def _run() -> None:
        channel: EventChannel[DataUpdated] = EventChannel("data_updated")
        order: list[str] = []

        async def _second(event):
            await asyncio.sleep(0)
            order.append("second:" + event.repository)

        channel.subscribe(lambda event: order.append("first:" + event.repository))
        channel(_second)
        assert channel.subscriber_count == 2

        await channel.publish(DataUpdated(repository="octo/widgets"))
        assert order == ["first:octo/widgets", "second:octo/widgets"]

    asyncio.run(_run())


def test_unsubscribe_stops_delivery():
    async def _run() -> None:
        channel: EventChannel[str] = EventChannel("names")
        seen: list[str] = []
        unsubscribe = channel.subscribe(seen.append)

        await channel.publish("a")
        unsubscribe()
        unsubscribe()
        await channel.publish("b")

        assert seen == ["a"]
        assert channel.subscriber_count == 0

    asyncio.run(_run())


def test_failing_subscriber_does_not_block_others():
    async def _run() -> None:
        channel: EventChannel[int] = EventChannel("numbers")
        seen: list[int] = []

        def _broken(value: int) -> None:
            raise ValueError("nope")

        channel.subscribe(_broken)
        channel.subscribe(seen.append)
        await channel.publish(1)

        assert seen == [1]

    asyncio.run(_run())
