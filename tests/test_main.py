import unittest

from fastapi.testclient import TestClient

from ecosense import live_updates, store_manager
from ecosense.main import app
from ecosense.store_manager import get_stores


class TestMain(unittest.TestCase):
    def test_app_metadata(self):
        self.assertEqual(app.title, "Ecosense Hanoi")
        paths = {route.path for route in app.routes}
        self.assertIn("/ws", paths)
        self.assertIn("/api/weather/current", paths)
        self.assertIn("/api/sustainability/vote", paths)


class TestWebSocket(unittest.TestCase):
    def setUp(self):
        self.stores = store_manager.use_in_memory_stores_for_tests(seed=True)
        app.dependency_overrides[get_stores] = lambda: self.stores
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()

    def test_welcome_and_subscribe(self):
        with self.client.websocket_connect("/ws") as ws:
            self.assertEqual(ws.receive_json(), live_updates.WELCOME_MESSAGE)
            ws.send_json({"type": "subscribe", "channel": "polls"})
            self.assertEqual(ws.receive_json(), {"type": "subscribed", "channel": "polls"})

    def test_poll_changes_are_broadcast(self):
        sent = []

        async def fake_broadcast(message, *, channel):
            sent.append((channel, message))
            return 1

        live_updates.manager.broadcast = fake_broadcast
        try:
            resp = self.client.post("/api/sustainability/vote", json={"poll_id": 2, "option_index": 3})
            self.assertEqual(resp.status_code, 200)
            self.client.post("/api/sustainability/polls/create", json={"question": "More trees?", "options": ["Yes", "No"]})
        finally:
            del live_updates.manager.broadcast

        self.assertEqual([(c, m["type"]) for c, m in sent], [("polls", "poll_update"), ("polls", "poll_created")])
        self.assertEqual(sent[0][1]["poll"]["options"][3]["votes"], 16)
        self.assertEqual(sent[1][1]["poll"]["question"], "More trees?")

    def test_unknown_messages_are_ignored(self):
        with self.client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_text("not json")
            ws.send_json({"type": "ping"})
            ws.send_json({"type": "subscribe", "channel": "polls"})
            self.assertEqual(ws.receive_json()["type"], "subscribed")


if __name__ == "__main__":
    unittest.main()
