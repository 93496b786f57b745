import asyncio

from teamhub.infrastructure.channel import (
    ERROR,
    NOTIFICATION_CREATE,
    NOTIFICATION_RECEIVED,
    REPORT_STATUS,
    USER_CONNECTED,
    NotificationChannel,
)


class FakeSubscriber:
    def __init__(self, *, broken: bool = False) -> None:
        self.frames: list[dict] = []
        self.broken = broken

    async def send_json(self, data):
        if self.broken:
            raise ConnectionError("socket closed")
        self.frames.append(data)

    def events(self) -> list[str]:
        return [frame["event"] for frame in self.frames]


def _channel(known_users=("u1", "u2")) -> NotificationChannel:
    async def user_exists(user_id: str) -> bool:
        return user_id in known_users

    return NotificationChannel(user_exists)


def test_join_acknowledges_only_the_joining_connection():
    channel = _channel()
    alice, bob = FakeSubscriber(), FakeSubscriber()
    alice_id = channel.connect(alice)
    channel.connect(bob)

    asyncio.run(channel.handle_message(alice_id, {"event": "join", "data": "u1"}))

    assert alice.frames == [{"event": USER_CONNECTED, "data": {"userId": "u1", "connectionId": alice_id}}]
    assert bob.frames == []
    assert channel.connected_users() == [{"connectionId": alice_id, "userId": "u1"}]


def test_join_accepts_object_payload_and_ignores_unknown_users():
    channel = _channel()
    subscriber = FakeSubscriber()
    connection_id = channel.connect(subscriber)

    async def scenario():
        await channel.handle_message(connection_id, {"event": "join", "data": {"userId": "ghost"}})
        await channel.handle_message(connection_id, {"event": "join", "data": {"userId": "u2"}})

    asyncio.run(scenario())

    assert subscriber.events() == [USER_CONNECTED]
    assert subscriber.frames[0]["data"]["userId"] == "u2"


def test_status_rebroadcast_skips_the_sender():
    channel = _channel()
    sender, first, second = FakeSubscriber(), FakeSubscriber(), FakeSubscriber()
    sender_id = channel.connect(sender)
    channel.connect(first)
    channel.connect(second)

    frame = {"event": REPORT_STATUS, "data": {"reportId": "r1", "status": "in_progress", "progress": 40, "x": 1}}
    asyncio.run(channel.handle_message(sender_id, frame))

    expected = {"event": REPORT_STATUS, "data": {"reportId": "r1", "status": "in_progress", "progress": 40}}
    assert sender.frames == []
    assert first.frames == [expected]
    assert second.frames == [expected]


def test_notification_create_fans_out_as_received():
    channel = _channel()
    sender, listener = FakeSubscriber(), FakeSubscriber()
    sender_id = channel.connect(sender)
    channel.connect(listener)

    asyncio.run(
        channel.handle_message(sender_id, {"event": NOTIFICATION_CREATE, "data": {"userId": "u2", "message": "hi"}})
    )

    assert sender.frames == []
    [frame] = listener.frames
    assert frame["event"] == NOTIFICATION_RECEIVED
    assert frame["data"]["message"] == "hi"
    assert frame["data"]["type"] == "info"
    assert "timestamp" in frame["data"]


def test_notify_broadcasts_to_everyone():
    channel = _channel()
    subscribers = [FakeSubscriber() for _ in range(3)]
    for subscriber in subscribers:
        channel.connect(subscriber)

    delivered = asyncio.run(channel.notify("u1", "New report assigned: Q3"))

    assert delivered == 3
    for subscriber in subscribers:
        assert subscriber.frames[0]["data"]["userId"] == "u1"
        assert subscriber.frames[0]["data"]["message"] == "New report assigned: Q3"


def test_failed_send_drops_the_subscriber_and_keeps_publishing():
    channel = _channel()
    healthy, broken = FakeSubscriber(), FakeSubscriber(broken=True)
    channel.connect(broken)
    channel.connect(healthy)

    delivered = asyncio.run(channel.publish(REPORT_STATUS, {"reportId": "r1"}))

    assert delivered == 1
    assert channel.connection_count == 1
    assert healthy.events() == [REPORT_STATUS]


def test_malformed_frames_get_an_error_back_to_the_sender_only():
    channel = _channel()
    sender, other = FakeSubscriber(), FakeSubscriber()
    sender_id = channel.connect(sender)
    channel.connect(other)

    async def scenario():
        await channel.handle_message(sender_id, ["not", "a", "frame"])
        await channel.handle_message(sender_id, {"event": REPORT_STATUS, "data": "oops"})
        await channel.handle_message(sender_id, {"event": "something:else", "data": {}})

    asyncio.run(scenario())

    assert sender.events() == [ERROR, ERROR]
    assert other.frames == []


def test_disconnected_subscribers_receive_nothing():
    channel = _channel()
    subscriber = FakeSubscriber()
    connection_id = channel.connect(subscriber)
    channel.disconnect(connection_id)
    channel.disconnect(connection_id)

    delivered = asyncio.run(channel.publish(REPORT_STATUS, {"reportId": "r1"}))

    assert delivered == 0
    assert subscriber.frames == []
    assert channel.connection_count == 0
