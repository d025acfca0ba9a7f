"""
Unit tests for the portal store.
"""
from unittest.mock import MagicMock

import pytest

USER = {"id": "u1", "name": "Aoife Byrne", "email": "aoife@example.com", "role": "CUSTOMER"}


@pytest.fixture
def api():
    client = MagicMock()
    client.token = None
    client.guest_id = None
    return client


@pytest.fixture
def store(api):
    from portal.store import PortalStore

    return PortalStore(client=api)


class TestAuth:

    def test_initial_state(self, store):
        assert store.auth.status == "anonymous"
        assert store.auth.auth_token is None

    def test_login_sets_token_on_client(self, store, api):
        api.login.return_value = {"user": USER, "profile": {"phone": None}, "token": "tok"}

        store.login("aoife@example.com", "pw")

        assert store.auth.status == "authenticated"
        assert store.auth.current_user == USER
        assert api.token == "tok"
        api.merge_cart.assert_not_called()

    def test_login_failure_records_error(self, store, api):
        from portal.exceptions import AuthenticationError

        api.login.side_effect = AuthenticationError("Invalid credentials")
        with pytest.raises(AuthenticationError):
            store.login("aoife@example.com", "wrong")

        assert store.auth.status == "anonymous"
        assert store.auth.error_message == "Invalid credentials"

    def test_login_merges_guest_cart(self, api):
        from portal.store import PortalStore

        store = PortalStore(client=api, guest_id="guest-1")
        api.login.return_value = {"user": USER, "profile": None, "token": "tok"}
        api.merge_cart.return_value = {
            "cart": {"id": "cart-1"},
            "items": [{"quantity": 2}, {"quantity": 1}],
            "subtotal": 65.0,
            "guest_id": None,
        }

        store.login("aoife@example.com", "pw")

        api.merge_cart.assert_called_once()
        assert store.cart.guest_id is None
        assert api.guest_id is None
        assert store.cart.cart_id == "cart-1"
        assert store.cart.item_count == 3
        assert store.cart.subtotal == 65.0

    def test_register_uses_customer_profile(self, store, api):
        api.register.return_value = {"user": USER, "customer_profile": {"company_name": "Byrne"}, "token": "tok"}

        store.register("Aoife Byrne", "aoife@example.com", "pw", company_name="Byrne")

        assert store.auth.user_profile == {"company_name": "Byrne"}
        api.register.assert_called_once_with("Aoife Byrne", "aoife@example.com", "pw", company_name="Byrne")

    def test_logout_clears_state_even_if_server_fails(self, store, api):
        from portal.exceptions import BackendUnavailableError

        api.login.return_value = {"user": USER, "profile": None, "token": "tok"}
        store.login("aoife@example.com", "pw")
        store.set_unread_messages(4)
        api.logout.side_effect = BackendUnavailableError()

        store.logout()

        assert store.auth.status == "anonymous"
        assert api.token is None
        assert store.realtime.unread_messages == 0

    def test_initialize_without_token(self, store, api):
        assert store.initialize_auth(None) == "anonymous"
        api.me.assert_not_called()

    def test_initialize_with_valid_token(self, store, api):
        api.me.return_value = {"user": USER, "profile": None}
        assert store.initialize_auth("saved") == "authenticated"
        assert store.auth.auth_token == "saved"

    def test_initialize_rejected_token_is_cleared(self, store, api):
        from portal.exceptions import AuthenticationError

        api.me.side_effect = AuthenticationError()
        assert store.initialize_auth("stale") == "anonymous"
        assert store.auth.auth_token is None
        assert api.token is None

    def test_initialize_network_failure_keeps_token(self, store, api):
        from portal.exceptions import BackendUnavailableError

        api.me.side_effect = BackendUnavailableError("down")
        assert store.initialize_auth("saved") == "anonymous"
        assert store.auth.auth_token == "saved"
        assert store.auth.error_message == "down"

    def _record(self, store):
        seen = []
        store.subscribe(lambda s: seen.append((s.auth.status, s.auth.is_authenticated, s.auth.is_loading)))
        return seen

    def test_login_passes_through_loading(self, store, api):
        seen = self._record(store)

        def login(*args, **kwargs):
            assert store.auth.status == "loading"
            assert store.auth.is_authenticated is False
            return {"user": USER, "profile": None, "token": "tok"}

        api.login.side_effect = login
        store.login("aoife@example.com", "pw")

        assert [status for status, _, _ in seen] == ["loading", "authenticated"]
        assert all(not (authenticated and loading) for _, authenticated, loading in seen)

    def test_failed_login_leaves_loading(self, store, api):
        from portal.exceptions import AuthenticationError

        seen = self._record(store)
        api.login.side_effect = AuthenticationError("Invalid credentials")
        with pytest.raises(AuthenticationError):
            store.login("aoife@example.com", "wrong")

        assert [status for status, _, _ in seen] == ["loading", "anonymous"]
        assert store.auth.is_loading is False

    def test_initialize_auth_passes_through_loading(self, store, api):
        seen = self._record(store)
        api.me.return_value = {"user": USER, "profile": None}

        store.initialize_auth("saved")

        assert [status for status, _, _ in seen] == ["loading", "authenticated"]
        assert all(not (authenticated and loading) for _, authenticated, loading in seen)

    def test_relogin_while_signed_in_is_never_both(self, store, api):
        api.login.return_value = {"user": USER, "profile": None, "token": "tok"}
        store.login("aoife@example.com", "pw")
        seen = self._record(store)

        store.login("aoife@example.com", "pw")

        assert seen[0] == ("loading", False, True)
        assert seen[-1] == ("authenticated", True, False)

    def test_token_listeners_follow_sign_in_and_out(self, store, api):
        tokens = []
        store.on_token_change(tokens.append)
        api.login.return_value = {"user": USER, "profile": None, "token": "tok"}

        store.login("aoife@example.com", "pw")
        store.update_profile(name="Aoife B")
        store.logout()
        store.logout()

        assert tokens == ["tok", None]

    def test_update_profile_renames_user(self, store, api):
        api.login.return_value = {"user": USER, "profile": None, "token": "tok"}
        store.login("aoife@example.com", "pw")
        api.update_profile.return_value = {"user": {**USER, "name": "Aoife B"}, "profile": {}}

        store.update_profile(name="Aoife B")
        assert store.auth.current_user["name"] == "Aoife B"


class TestCart:

    def test_refresh_cart_adopts_guest_id(self, store, api):
        api.get_cart.return_value = {
            "cart": {"id": "cart-9"},
            "items": [{"quantity": 1}],
            "subtotal": 25.0,
            "guest_id": "guest-new",
        }

        cart = store.refresh_cart()

        assert cart.cart_id == "cart-9"
        assert cart.guest_id == "guest-new"
        assert api.guest_id == "guest-new"


class TestToastsAndModals:

    def test_toast_queue_keeps_newest_five(self, store):
        for i in range(7):
            store.show_toast(f"message {i}")
        messages = [t.message for t in store.ui.toast_queue]
        assert messages == [f"message {i}" for i in range(2, 7)]

    def test_unknown_toast_type_falls_back_to_info(self, store):
        assert store.show_toast("hi", "party").type == "info"

    def test_dismiss_and_expire(self, store):
        first = store.show_toast("first", duration=1000)
        second = store.show_toast("second", duration=10000)
        store.dismiss_toast(first.id)
        assert [t.id for t in store.ui.toast_queue] == [second.id]

        assert store.expire_toasts(now=second.created_at + 20000) == 1
        assert store.ui.toast_queue == []

    def test_modal_stack(self, store):
        store.open_modal("login")
        store.open_modal("confirm", {"action": "reject"})
        assert store.ui.modal_stack.active.type == "confirm"
        store.close_modal()
        assert store.ui.modal_stack.active.type == "login"
        store.close_all_modals()
        assert not store.ui.modal_stack.is_open


class TestSubscriptions:

    def test_subscribers_are_notified_and_can_unsubscribe(self, store):
        calls = []
        unsubscribe = store.subscribe(lambda s: calls.append(s.realtime.unread_messages))
        store.set_unread_messages(2)
        unsubscribe()
        store.set_unread_messages(5)
        assert calls == [2]

    def test_failing_subscriber_does_not_break_others(self, store):
        calls = []

        def broken(_):
            raise RuntimeError("render failed")

        store.subscribe(broken)
        store.subscribe(lambda s: calls.append(True))
        store.set_realtime_connected(True)
        assert calls == [True]


class TestRealtimeEvents:
    """Tests for handle_realtime_event."""

    def test_order_status_toast(self, store):
        assert store.handle_realtime_event("order/status_updated", {"new_status": "IN_PRODUCTION"}) is True
        assert store.ui.toast_queue[-1].message == "Order status updated to in production"
        assert store.realtime.last_event_at is not None

    def test_message_increments_unread(self, store):
        store.handle_realtime_event("message/received", {"sender_name": "Staff User"})
        assert store.realtime.unread_messages == 1
        assert store.ui.toast_queue[-1].message == "New message from Staff User"

    def test_own_message_not_counted(self, store, api):
        api.login.return_value = {"user": USER, "profile": None, "token": "tok"}
        store.login("aoife@example.com", "pw")

        handled = store.handle_realtime_event("message/received", {"sender_user_id": "u1", "sender_name": "Aoife"})

        assert handled is True
        assert store.realtime.unread_messages == 0
        assert store.ui.toast_queue == []

        store.handle_realtime_event("message/received", {"sender_user_id": "staff-1", "sender_name": "Staff User"})
        assert store.realtime.unread_messages == 1

    def test_proof_uploaded(self, store):
        store.handle_realtime_event("proof/uploaded", {"version_number": 2})
        assert store.ui.toast_queue[-1].message == "Proof version 2 uploaded"

    def test_quote_finalized(self, store):
        store.handle_realtime_event("quote/finalized", {"total_amount": 123})
        toast = store.ui.toast_queue[-1]
        assert toast.type == "success"
        assert toast.message == "Your quote has been finalized: total €123.00"

    def test_booking_confirmed(self, store):
        store.handle_realtime_event("booking/confirmed", {})
        assert store.ui.toast_queue[-1].type == "success"

    def test_notifications_capped_and_urgent_toasted(self, store):
        for i in range(55):
            store.handle_realtime_event("notification/new", {"id": i, "priority": "LOW", "message": "m"})
        assert len(store.realtime.notifications) == 50
        assert store.realtime.notifications[0]["id"] == 54
        assert store.ui.toast_queue == []

        store.handle_realtime_event("notification/new", {"id": "x", "priority": "URGENT", "message": "Proof due"})
        assert store.ui.toast_queue[-1].message == "Proof due"

    def test_unknown_channel(self, store):
        assert store.handle_realtime_event("upload/completed", {}) is False
        assert store.realtime.last_event_at is None
