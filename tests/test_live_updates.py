import asyncio

from fastapi import WebSocketDisconnect

from ecosense.live_updates import POLLS_CHANNEL, WELCOME_MESSAGE, ConnectionManager


class FakeWebSocket:
    def __init__(self, fail_with=None, fail_after=2):
        self.accepted = False
        self.sent = []
        self.fail_with = fail_with
        self.fail_after = fail_after

    async def accept(self):
        self.accepted = True

    async def send_json(self, message):
        if self.fail_with is not None and len(self.sent) >= self.fail_after:
            raise self.fail_with
        self.sent.append(message)


def test_connect_sends_welcome():
    async def scenario():
        manager = ConnectionManager()
        ws = FakeWebSocket()
        await manager.connect(ws)
        return manager, ws

    manager, ws = asyncio.run(scenario())
    assert ws.accepted
    assert ws.sent == [WELCOME_MESSAGE]
    assert manager.connection_count == 1


def test_broadcast_reaches_only_subscribers():
    async def scenario():
        manager = ConnectionManager()
        subscriber, bystander = FakeWebSocket(), FakeWebSocket()
        await manager.connect(subscriber)
        await manager.connect(bystander)
        await manager.handle_message(subscriber, '{"type": "subscribe", "channel": "polls"}')
        reached = await manager.broadcast({"type": "poll_update", "poll": {"id": 1}}, channel=POLLS_CHANNEL)
        return reached, subscriber, bystander

    reached, subscriber, bystander = asyncio.run(scenario())
    assert reached == 1
    assert subscriber.sent[-1] == {"type": "poll_update", "poll": {"id": 1}}
    assert subscriber.sent[1] == {"type": "subscribed", "channel": "polls"}
    assert bystander.sent == [WELCOME_MESSAGE]


def test_failed_send_drops_client():
    async def scenario():
        manager = ConnectionManager()
        broken = FakeWebSocket(fail_with=WebSocketDisconnect(code=1006))
        healthy = FakeWebSocket()
        for ws in (broken, healthy):
            await manager.connect(ws)
            await manager.handle_message(ws, '{"type": "subscribe", "channel": "polls"}')
        reached = await manager.broadcast({"type": "poll_created"}, channel=POLLS_CHANNEL)
        return manager, reached

    manager, reached = asyncio.run(scenario())
    assert reached == 1
    assert manager.connection_count == 1


def test_malformed_messages_are_ignored():
    async def scenario():
        manager = ConnectionManager()
        ws = FakeWebSocket()
        await manager.connect(ws)
        await manager.handle_message(ws, "not json")
        await manager.handle_message(ws, "[1, 2]")
        await manager.handle_message(ws, '{"type": "unsubscribe"}')
        return await manager.broadcast({"type": "poll_update"}, channel=POLLS_CHANNEL), ws

    reached, ws = asyncio.run(scenario())
    assert reached == 0
    assert ws.sent == [WELCOME_MESSAGE]


def test_disconnect_is_idempotent():
    manager = ConnectionManager()
    ws = FakeWebSocket()
    asyncio.run(manager.connect(ws))
    manager.disconnect(ws)
    manager.disconnect(ws)
    assert manager.connection_count == 0
