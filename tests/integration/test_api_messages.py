"""
Integration tests for quote/order message threads.
"""
import pytest

from conftest import register_customer, submit_quote


@pytest.fixture
def thread_id(client, catalog, customer):
    return submit_quote(client, customer, catalog)["message_thread"]["id"]


def post(client, user, thread_id, body):
    return client.post(f"/api/v1/message-threads/{thread_id}/messages", json={"body": body}, headers=user["headers"])


class TestMessages:

    def test_send_and_list(self, client, customer, staff, thread_id):
        first = post(client, customer, thread_id, "  Can you do gold foil?  ")
        assert first.status_code == 201
        assert first.json()["body"] == "Can you do gold foil?"
        assert first.json()["sender_name"] == "Aoife Byrne"
        assert first.json()["sender_role"] == "CUSTOMER"

        post(client, staff, thread_id, "Yes, on the premium tier.")

        messages = client.get(f"/api/v1/message-threads/{thread_id}/messages", headers=customer["headers"]).json()
        assert [m["sender_role"] for m in messages] == ["CUSTOMER", "STAFF"]
        assert messages[1]["sender_name"] == "Staff User"

    def test_body_validation(self, client, customer, thread_id):
        assert post(client, customer, thread_id, "   ").status_code == 400
        assert post(client, customer, thread_id, "x" * 1001).status_code == 400
        assert post(client, customer, thread_id, "x" * 1000).status_code == 201

    def test_other_customer_locked_out(self, client, thread_id):
        other = register_customer(client, email="ciara@example.com", name="Ciara")
        assert client.get(f"/api/v1/message-threads/{thread_id}/messages", headers=other["headers"]).status_code == 403
        assert post(client, other, thread_id, "hello").status_code == 403

    def test_unknown_thread(self, client, customer):
        assert post(client, customer, "missing", "hello").status_code == 404


class TestReadState:

    def test_unread_count_and_mark_read(self, client, customer, staff, thread_id):
        message_id = post(client, staff, thread_id, "Proof is ready").json()["id"]

        assert client.get("/api/v1/messages/unread-count", headers=customer["headers"]).json() == {"unread": 1}
        assert client.get("/api/v1/messages/unread-count", headers=staff["headers"]).json() == {"unread": 0}

        response = client.patch(f"/api/v1/messages/{message_id}/mark-read", headers=customer["headers"])
        assert response.json() == {"message": "Marked as read"}
        assert client.get("/api/v1/messages/unread-count", headers=customer["headers"]).json() == {"unread": 0}

    def test_sender_cannot_mark_own_message(self, client, customer, thread_id):
        message_id = post(client, customer, thread_id, "Hello").json()["id"]
        response = client.patch(f"/api/v1/messages/{message_id}/mark-read", headers=customer["headers"])
        assert response.status_code == 403

    def test_staff_sees_customer_messages_as_unread(self, client, customer, staff, thread_id):
        post(client, customer, thread_id, "Any update?")
        assert client.get("/api/v1/messages/unread-count", headers=staff["headers"]).json() == {"unread": 1}

    def test_unread_count_scoped_to_own_threads(self, client, catalog, customer, staff, thread_id):
        other = register_customer(client, email="ciara@example.com", name="Ciara")
        other_thread = submit_quote(client, other, catalog)["message_thread"]["id"]
        post(client, staff, other_thread, "For Ciara")

        assert client.get("/api/v1/messages/unread-count", headers=customer["headers"]).json() == {"unread": 0}
        assert client.get("/api/v1/messages/unread-count", headers=other["headers"]).json() == {"unread": 1}

    def test_mark_read_unknown_message(self, client, customer):
        assert client.patch("/api/v1/messages/missing/mark-read", headers=customer["headers"]).status_code == 404
