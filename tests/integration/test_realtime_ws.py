"""
Integration tests for the realtime WebSocket endpoint.
"""
from conftest import register_customer, submit_quote


class TestRealtimeSocket:

    def test_ping_pong(self, client):
        with client.websocket_connect("/api/v1/ws") as ws:
            ws.send_text("not json")
            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}

    def test_connection_counted_while_open(self, client, customer):
        with client.websocket_connect(f"/api/v1/ws?token={customer['token']}") as ws:
            ws.send_json({"type": "ping"})
            ws.receive_json()
            assert client.get("/api/v1/health").json()["websocket_connections"] == 1

    def test_customer_receives_own_quote_events(self, client, catalog, customer):
        with client.websocket_connect(f"/api/v1/ws?token={customer['token']}") as ws:
            ws.send_json({"type": "ping"})
            ws.receive_json()

            quote_id = submit_quote(client, customer, catalog)["quote"]["id"]
            event = ws.receive_json()

        assert event["channel"] == "quote/status_updated"
        assert event["data"]["event_type"] == "quote_status_updated"
        assert event["data"]["quote_id"] == quote_id
        assert event["data"]["new_status"] == "SUBMITTED"

    def test_staff_receives_every_customer_event(self, client, catalog, customer, staff):
        other = register_customer(client, email="ciara@example.com", name="Ciara")
        with client.websocket_connect(f"/api/v1/ws?token={staff['token']}") as ws:
            ws.send_json({"type": "ping"})
            ws.receive_json()

            submit_quote(client, other, catalog)
            event = ws.receive_json()

        assert event["data"]["customer_id"] == other["user"]["id"]

    def test_other_customer_sees_nothing(self, client, catalog, customer):
        other = register_customer(client, email="ciara@example.com", name="Ciara")
        with client.websocket_connect(f"/api/v1/ws?token={other['token']}") as ws:
            ws.send_json({"type": "ping"})
            ws.receive_json()

            submit_quote(client, customer, catalog)
            # the next frame must be the reply to this ping, not a quote event
            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}
