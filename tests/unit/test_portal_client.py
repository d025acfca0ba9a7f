"""
Unit tests for the portal API client: headers, error mapping and
endpoint wiring.
"""
from unittest.mock import MagicMock, patch

import pytest
import requests


def _response(status_code=200, json_data=None, text="", headers=None):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    response.headers = headers or {}
    if json_data is None:
        response.json.side_effect = ValueError("No JSON")
    else:
        response.json.return_value = json_data
    return response


class TestRequestHeaders:

    def test_anonymous_headers(self):
        from portal.api_client import PortalAPIClient

        client = PortalAPIClient(base_url="http://api.test/")
        assert client.base_url == "http://api.test"
        assert client._get_headers() == {"Accept": "application/json"}

    def test_token_and_guest_id_headers(self):
        from portal.api_client import PortalAPIClient

        client = PortalAPIClient(base_url="http://api.test", token="tok", guest_id="guest-1")
        headers = client._get_headers()
        assert headers["Authorization"] == "Bearer tok"
        assert headers["X-Guest-ID"] == "guest-1"

    def test_request_builds_url_and_merges_headers(self):
        from portal.api_client import PortalAPIClient

        client = PortalAPIClient(base_url="http://api.test", timeout=7, token="tok")
        with patch.object(client.session, "request", return_value=_response(200, {"ok": True})) as mock_request:
            client._call("GET", "/cart", headers={"X-Guest-Email": "g@example.com"})

        args, kwargs = mock_request.call_args
        assert args == ("GET", "http://api.test/api/v1/cart")
        assert kwargs["timeout"] == 7
        assert kwargs["headers"]["Authorization"] == "Bearer tok"
        assert kwargs["headers"]["X-Guest-Email"] == "g@example.com"

    def test_connection_error_becomes_backend_unavailable(self):
        from portal.api_client import PortalAPIClient
        from portal.exceptions import BackendUnavailableError

        client = PortalAPIClient(base_url="http://api.test")
        with patch.object(client.session, "request", side_effect=requests.exceptions.ConnectionError("refused")):
            with pytest.raises(BackendUnavailableError):
                client.get_cart()
            assert client.health_check() is False


class TestResponseHandling:
    """Tests for _handle status mapping."""

    def _client(self):
        from portal.api_client import PortalAPIClient

        return PortalAPIClient(base_url="http://api.test")

    def test_success_and_no_content(self):
        client = self._client()
        assert client._handle(_response(200, {"a": 1})) == {"a": 1}
        assert client._handle(_response(204)) is None

    def test_invalid_json_on_success(self):
        from portal.exceptions import APIError

        with pytest.raises(APIError):
            self._client()._handle(_response(200, None, text="<html>"))

    @pytest.mark.parametrize("status,exc_name", [
        (401, "AuthenticationError"),
        (403, "PermissionDeniedError"),
        (404, "NotFoundError"),
        (409, "ConflictError"),
        (400, "APIError"),
        (500, "APIError"),
    ])
    def test_status_mapping(self, status, exc_name):
        from portal import exceptions

        exc_class = getattr(exceptions, exc_name)
        with pytest.raises(exc_class) as exc_info:
            self._client()._handle(_response(status, {"detail": "Quote has not been priced yet"}))
        assert exc_info.value.status_code == status
        assert exc_info.value.message == "Quote has not been priced yet"

    def test_rate_limit_reads_retry_after(self):
        from portal.exceptions import RateLimitError

        response = _response(429, {"detail": "Rate limit exceeded"}, headers={"Retry-After": "60"})
        with pytest.raises(RateLimitError) as exc_info:
            self._client()._handle(response)
        assert exc_info.value.retry_after == 60
        assert exc_info.value.status_code == 429

    def test_validation_error_list_is_joined(self):
        from portal.exceptions import APIError

        detail = [{"msg": "field required"}, {"msg": "value is not a valid email"}]
        with pytest.raises(APIError) as exc_info:
            self._client()._handle(_response(422, {"detail": detail}))
        assert exc_info.value.message == "field required; value is not a valid email"

    def test_non_json_error_body(self):
        from portal.exceptions import APIError

        with pytest.raises(APIError) as exc_info:
            self._client()._handle(_response(502, None, text="Bad Gateway"))
        assert "502" in exc_info.value.message


class TestEndpoints:
    """Endpoint methods send the expected method, path and payload."""

    def _call(self, method_name, *args, **kwargs):
        from portal.api_client import PortalAPIClient

        client = PortalAPIClient(base_url="http://api.test")
        with patch.object(client, "_call", return_value={"unread": 3, "available": True}) as mock_call:
            result = getattr(client, method_name)(*args, **kwargs)
        return mock_call, result

    def test_login_with_role(self):
        mock_call, _ = self._call("login", "a@example.com", "pw", role="STAFF")
        mock_call.assert_called_once_with(
            "POST", "/auth/login", json={"email": "a@example.com", "password": "pw", "role": "STAFF"}
        )

    def test_create_quote_defaults(self):
        mock_call, _ = self._call("create_quote", "svc", "tier")
        mock_call.assert_called_once_with("POST", "/quotes", json={
            "service_id": "svc", "tier_id": "tier", "project_details": {}, "file_ids": [], "notes": None,
        })

    def test_guest_quote_status(self):
        mock_call, _ = self._call("update_guest_quote_status", "tok", "APPROVED")
        mock_call.assert_called_once_with("PATCH", "/guest/quotes/tok/status", json={"status": "APPROVED"})

    def test_unread_count_unwraps(self):
        mock_call, result = self._call("unread_count")
        assert result == 3
        mock_call.assert_called_once_with("GET", "/messages/unread-count")

    def test_check_email_unwraps(self):
        _, result = self._call("check_email", "a@example.com")
        assert result is True

    def test_product_order_sends_guest_email(self):
        mock_call, _ = self._call("get_product_order", "o1", guest_email="g@example.com")
        mock_call.assert_called_once_with("GET", "/orders/product/o1", headers={"X-Guest-Email": "g@example.com"})

    def test_list_services_drops_empty_filters(self):
        mock_call, _ = self._call("list_services", category="print")
        mock_call.assert_called_once_with("GET", "/public/services", params={"category": "print"})

    def test_upload_file(self):
        stream = MagicMock()
        mock_call, _ = self._call("upload_file", "art.pdf", stream, "application/pdf", quote_id="q1")
        mock_call.assert_called_once_with(
            "POST", "/uploads", files={"file": ("art.pdf", stream, "application/pdf")}, data={"quote_id": "q1"}
        )

    @pytest.mark.parametrize("method_name,args,expected", [
        ("list_service_categories", (), ("GET", "/public/service-categories")),
        ("list_product_categories", (), ("GET", "/public/product-categories")),
        ("get_case_study", ("shop-front",), ("GET", "/public/case-studies/shop-front")),
        ("list_proofs", ("o1",), ("GET", "/orders/o1/proofs")),
        ("list_payments", ("o1",), ("GET", "/orders/o1/payments")),
        ("get_booking", ("b1",), ("GET", "/bookings/b1")),
        ("get_upload", ("u1",), ("GET", "/uploads/u1")),
        ("get_notification_preferences", (), ("GET", "/users/notification-preferences")),
    ])
    def test_read_endpoints(self, method_name, args, expected):
        mock_call, _ = self._call(method_name, *args)
        mock_call.assert_called_once_with(*expected)

    def test_notification_preferences_update(self):
        mock_call, _ = self._call("update_notification_preferences", email_marketing=True)
        mock_call.assert_called_once_with("PATCH", "/users/notification-preferences", json={"email_marketing": True})

    def test_product_intent(self):
        mock_call, _ = self._call("create_product_intent", "c1", 79.95)
        mock_call.assert_called_once_with(
            "POST", "/payments/create-product-intent", json={"cart_id": "c1", "amount": 79.95}
        )
