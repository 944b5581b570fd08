import json
import unittest

from fastapi.testclient import TestClient
from pydantic import ValidationError
from starlette.websockets import WebSocketDisconnect

from stranger_relay.client_websocket import origin_allowed
from stranger_relay.config import DEFAULT_ALLOWED_ORIGIN, DEFAULT_PORT, ServiceConfig
from stranger_relay.main import create_app


def send(ws, event, data=None):
    ws.send_text(json.dumps({"event": event, "data": data}))


def connected_id(ws):
    frame = ws.receive_json()
    assert frame["event"] == "connected", frame
    return frame["data"]["id"]


class TestServiceConfig(unittest.TestCase):
    def test_defaults(self):
        config = ServiceConfig.from_env({})
        self.assertEqual(config.port, DEFAULT_PORT)
        self.assertEqual(config.allowed_origin, DEFAULT_ALLOWED_ORIGIN)
        self.assertEqual(config.host, "0.0.0.0")
        self.assertEqual(config.log_level, "INFO")

    def test_environment_overrides(self):
        config = ServiceConfig.from_env({
            "PORT": "8081",
            "CORS_ORIGIN": "https://chat.example",
            "LOG_LEVEL": "debug",
        })
        self.assertEqual(config.port, 8081)
        self.assertEqual(config.allowed_origin, "https://chat.example")
        self.assertEqual(config.log_level, "DEBUG")

    def test_invalid_values_are_rejected(self):
        with self.assertRaises(ValidationError):
            ServiceConfig.from_env({"LOG_LEVEL": "verbose"})
        with self.assertRaises(ValidationError):
            ServiceConfig.from_env({"PORT": "eighty"})

    def test_origin_check(self):
        self.assertTrue(origin_allowed(None, "https://chat.example"))
        self.assertTrue(origin_allowed("https://chat.example/", "https://chat.example"))
        self.assertTrue(origin_allowed("https://other.example", "*"))
        self.assertFalse(origin_allowed("https://other.example", "https://chat.example"))


class TestHTTPEndpoints(unittest.TestCase):
    def setUp(self):
        self.app = create_app(ServiceConfig(allowed_origin="https://chat.example"))

    def test_root_and_health(self):
        with TestClient(self.app) as client:
            self.assertEqual(client.get("/").status_code, 200)
            self.assertEqual(client.get("/health").json(), {"status": "ok"})

    def test_stats_start_empty(self):
        with TestClient(self.app) as client:
            self.assertEqual(client.get("/api/stats").json(),
                             {"connected_count": 0, "waiting_count": 0, "paired_count": 0})

    def test_cors_allows_configured_origin(self):
        with TestClient(self.app) as client:
            resp = client.get("/health", headers={"Origin": "https://chat.example"})
            self.assertEqual(resp.headers.get("access-control-allow-origin"), "https://chat.example")
            resp = client.get("/health", headers={"Origin": "https://evil.example"})
            self.assertIsNone(resp.headers.get("access-control-allow-origin"))


class TestChatWebSocket(unittest.TestCase):
    def setUp(self):
        self.app = create_app(ServiceConfig(allowed_origin="https://chat.example"))

    def test_strangers_are_paired_and_chat(self):
        with TestClient(self.app) as client:
            with client.websocket_connect("/ws") as ws_x, client.websocket_connect("/ws") as ws_y:
                x_id = connected_id(ws_x)
                y_id = connected_id(ws_y)
                self.assertNotEqual(x_id, y_id)

                send(ws_x, "find-stranger", {"type": "video"})
                send(ws_y, "find-stranger", {"type": "audio"})

                self.assertEqual(ws_x.receive_json(),
                                 {"event": "stranger-found", "data": {"id": y_id, "callType": "audio"}})
                self.assertEqual(ws_y.receive_json(),
                                 {"event": "stranger-found", "data": {"id": x_id, "callType": "video"}})

                send(ws_x, "send-message", {"text": "hi"})
                self.assertEqual(ws_y.receive_json(), {"event": "new-message", "data": {"text": "hi"}})

                send(ws_y, "webrtc-signal", {"to": x_id, "signal": {"type": "answer", "sdp": "v=0"}})
                self.assertEqual(ws_x.receive_json(), {
                    "event": "webrtc-signal",
                    "data": {"from": y_id, "signal": {"type": "answer", "sdp": "v=0"}},
                })

                send(ws_x, "media-status-changed", {"video": False})
                self.assertEqual(ws_y.receive_json(),
                                 {"event": "stranger-media-status", "data": {"video": False}})

                stats = client.get("/api/stats").json()
                self.assertEqual(stats, {"connected_count": 2, "waiting_count": 0, "paired_count": 1})

    def test_partner_disconnect_is_reported(self):
        with TestClient(self.app) as client:
            with client.websocket_connect("/ws") as ws_x:
                connected_id(ws_x)
                with client.websocket_connect("/ws") as ws_y:
                    connected_id(ws_y)
                    send(ws_x, "find-stranger", {"type": "video"})
                    send(ws_y, "find-stranger", {"type": "video"})
                    ws_x.receive_json()
                    ws_y.receive_json()

                self.assertEqual(ws_x.receive_json(), {"event": "stranger-disconnected", "data": None})

                # x is unpaired now; its message goes nowhere and it can look again
                send(ws_x, "send-message", {"text": "hello?"})
                send(ws_x, "find-stranger", {"type": "video"})
                with client.websocket_connect("/ws") as ws_z:
                    z_id = connected_id(ws_z)
                    send(ws_z, "find-stranger", {"type": "audio"})
                    self.assertEqual(ws_x.receive_json(),
                                     {"event": "stranger-found", "data": {"id": z_id, "callType": "audio"}})
                    ws_z.receive_json()

    def test_end_chat_notifies_partner(self):
        with TestClient(self.app) as client:
            with client.websocket_connect("/ws") as ws_x, client.websocket_connect("/ws") as ws_y:
                connected_id(ws_x)
                connected_id(ws_y)
                send(ws_x, "find-stranger", {"type": "audio"})
                send(ws_y, "find-stranger", {"type": "audio"})
                ws_x.receive_json()
                ws_y.receive_json()

                send(ws_x, "disconnect-chat")
                self.assertEqual(ws_y.receive_json(), {"event": "stranger-disconnected", "data": None})
                stats = client.get("/api/stats").json()
                self.assertEqual(stats, {"connected_count": 2, "waiting_count": 0, "paired_count": 0})

    def test_binary_frame_does_not_end_the_chat(self):
        with TestClient(self.app) as client:
            with client.websocket_connect("/ws") as ws_x, client.websocket_connect("/ws") as ws_y:
                connected_id(ws_x)
                connected_id(ws_y)
                send(ws_x, "find-stranger", {"type": "video"})
                send(ws_y, "find-stranger", {"type": "video"})
                ws_x.receive_json()
                ws_y.receive_json()

                ws_x.send_bytes(json.dumps({"event": "send-message", "data": {"text": "raw"}}).encode())
                send(ws_x, "send-message", {"text": "after"})
                self.assertEqual(ws_y.receive_json(), {"event": "new-message", "data": {"text": "after"}})
                stats = client.get("/api/stats").json()
                self.assertEqual(stats, {"connected_count": 2, "waiting_count": 0, "paired_count": 1})

    def test_malformed_frames_are_dropped(self):
        with TestClient(self.app) as client:
            with client.websocket_connect("/ws") as ws_x, client.websocket_connect("/ws") as ws_y:
                connected_id(ws_x)
                y_id = connected_id(ws_y)

                ws_x.send_text("definitely not json")
                ws_x.send_text(json.dumps(["find-stranger"]))
                send(ws_x, "no-such-event", {})
                send(ws_x, "find-stranger", {"kind": "video"})

                # the connection survives and still works
                send(ws_x, "find-stranger", {"type": "video"})
                send(ws_y, "find-stranger", {"type": "video"})
                self.assertEqual(ws_x.receive_json(),
                                 {"event": "stranger-found", "data": {"id": y_id, "callType": "video"}})
                ws_y.receive_json()

    def test_disallowed_origin_is_rejected(self):
        with TestClient(self.app) as client:
            with self.assertRaises(WebSocketDisconnect):
                with client.websocket_connect("/ws", headers={"origin": "https://evil.example"}):
                    pass
            self.assertEqual(client.get("/api/stats").json()["connected_count"], 0)


if __name__ == "__main__":
    unittest.main()
