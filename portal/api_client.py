"""
Backend API client for the SultanStamp portal.

Thin wrapper over the ``/api/v1`` REST API with retry logic and error
mapping. Every call returns the decoded JSON body or raises a
:class:`~portal.exceptions.APIError` subclass.
"""

import json
import logging
from typing import Any, BinaryIO, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from portal.config import config
from portal.exceptions import STATUS_EXCEPTIONS, APIError, BackendUnavailableError, RateLimitError

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


class PortalAPIClient:
    """Client for the storefront backend API with retry logic."""

    def __init__(
        self,
        base_url: str = None,
        timeout: int = None,
        max_retries: int = None,
        token: str = None,
        guest_id: str = None,
    ):
        """Initialize API client.

        Args:
            base_url: Backend API URL (default from config)
            timeout: Request timeout in seconds
            max_retries: Maximum retry attempts
            token: Bearer token of the signed-in user
            guest_id: Guest cart identifier sent as X-Guest-ID
        """
        self.base_url = (base_url or config.API_BASE_URL).rstrip("/")
        self.timeout = timeout or config.API_TIMEOUT_SECONDS
        self.max_retries = max_retries if max_retries is not None else config.MAX_RETRY_ATTEMPTS
        self.token = token
        self.guest_id = guest_id

        # Configure session with retry
        self.session = requests.Session()
        retry_strategy = Retry(
            total=self.max_retries,
            backoff_factor=0.5,
            status_forcelist=[500, 502, 503, 504],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def _get_headers(self) -> Dict[str, str]:
        """Request headers carrying the bearer token and guest id when set."""
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if self.guest_id:
            headers["X-Guest-ID"] = self.guest_id
        return headers

    def _request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        """Make HTTP request with error handling."""
        url = f"{self.base_url}{API_PREFIX}{endpoint}"
        kwargs.setdefault('timeout', self.timeout)

        headers = self._get_headers()
        if 'headers' in kwargs:
            headers.update(kwargs['headers'])
        kwargs['headers'] = headers

        try:
            return self.session.request(method, url, **kwargs)
        except requests.exceptions.RequestException as e:
            logger.error(f"Request failed: {method} {url} - {e}")
            raise BackendUnavailableError(f"Cannot reach backend: {e}") from e

    def _handle(self, response: requests.Response) -> Any:
        """Decode a success body or raise the matching APIError."""
        if response.status_code == 204:
            return None
        if 200 <= response.status_code < 300:
            try:
                return response.json()
            except (json.JSONDecodeError, ValueError) as e:
                logger.error(f"Invalid JSON in success response: {e}")
                raise APIError("Invalid response from server", status_code=response.status_code)

        try:
            detail = response.json().get('detail', f"HTTP {response.status_code}")
        except (json.JSONDecodeError, ValueError, AttributeError):
            detail = f"HTTP {response.status_code}: {response.text[:100] if response.text else 'Unknown error'}"
        if not isinstance(detail, str):
            # FastAPI request validation errors carry a list of problems
            detail = "; ".join(str(item.get("msg", item)) if isinstance(item, dict) else str(item) for item in detail)

        exc_class = STATUS_EXCEPTIONS.get(response.status_code, APIError)
        if exc_class is RateLimitError:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(detail, detail=detail, retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None)
        raise exc_class(detail, status_code=response.status_code, detail=detail)

    def _call(self, method: str, endpoint: str, **kwargs) -> Any:
        return self._handle(self._request(method, endpoint, **kwargs))

    # Health check
    def health_check(self) -> bool:
        """Check if backend is healthy."""
        try:
            response = self._request('GET', '/health')
            return response.status_code == 200
        except BackendUnavailableError:
            return False

    # Auth
    def check_email(self, email: str) -> bool:
        return self._call('POST', '/auth/check-email', json={"email": email})["available"]

    def register(self, name: str, email: str, password: str, **profile) -> Dict[str, Any]:
        """Create a customer account; returns user, customer_profile and token."""
        payload = {"name": name, "email": email, "password": password, **profile}
        return self._call('POST', '/auth/register', json=payload)

    def login(self, email: str, password: str, role: str = None) -> Dict[str, Any]:
        payload = {"email": email, "password": password}
        if role:
            payload["role"] = role
        return self._call('POST', '/auth/login', json=payload)

    def logout(self) -> Dict[str, Any]:
        return self._call('POST', '/auth/logout')

    def me(self) -> Dict[str, Any]:
        return self._call('GET', '/auth/me')

    def forgot_password(self, email: str) -> Dict[str, Any]:
        return self._call('POST', '/auth/forgot-password', json={"email": email})

    def reset_password(self, token: str, password: str) -> Dict[str, Any]:
        return self._call('POST', '/auth/reset-password', json={"token": token, "password": password})

    # Public catalog
    def list_services(self, category: str = None, search: str = None, is_top_seller: bool = None) -> Dict[str, Any]:
        params = {k: v for k, v in {"category": category, "search": search, "is_top_seller": is_top_seller}.items() if v is not None}
        return self._call('GET', '/public/services', params=params)

    def get_service(self, slug: str) -> Dict[str, Any]:
        return self._call('GET', f'/public/services/{slug}')

    def list_service_categories(self) -> List[Dict[str, Any]]:
        return self._call('GET', '/public/service-categories')

    def list_tiers(self) -> List[Dict[str, Any]]:
        return self._call('GET', '/public/tiers')

    def list_gallery(self, category: str = None, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        params = {"page": page, "limit": limit}
        if category:
            params["category"] = category
        return self._call('GET', '/public/gallery', params=params)

    def get_case_study(self, slug: str) -> Dict[str, Any]:
        return self._call('GET', f'/public/case-studies/{slug}')

    def get_marketing_content(self, page_key: str) -> List[Dict[str, Any]]:
        return self._call('GET', '/public/marketing-content', params={"page_key": page_key})

    def send_contact_inquiry(self, name: str, email: str, message: str, **extra) -> Dict[str, Any]:
        return self._call('POST', '/public/contact-inquiry', json={"name": name, "email": email, "message": message, **extra})

    def list_products(self, category: str = None, search: str = None) -> Dict[str, Any]:
        params = {k: v for k, v in {"category": category, "search": search}.items() if v is not None}
        return self._call('GET', '/public/products', params=params)

    def list_product_categories(self) -> List[Dict[str, Any]]:
        return self._call('GET', '/public/product-categories')

    def get_product(self, slug: str) -> Dict[str, Any]:
        return self._call('GET', f'/public/products/{slug}')

    # Quotes
    def list_quotes(self, status: str = None, page: int = 1) -> Dict[str, Any]:
        params = {"page": page}
        if status:
            params["status"] = status
        return self._call('GET', '/quotes', params=params)

    def create_quote(
        self,
        service_id: str,
        tier_id: str,
        project_details: Dict[str, Any] = None,
        file_ids: List[str] = None,
        notes: str = None,
    ) -> Dict[str, Any]:
        """Submit a quote request from the wizard answers."""
        payload = {
            "service_id": service_id,
            "tier_id": tier_id,
            "project_details": project_details or {},
            "file_ids": file_ids or [],
            "notes": notes,
        }
        return self._call('POST', '/quotes', json=payload)

    def get_quote(self, quote_id: str) -> Dict[str, Any]:
        return self._call('GET', f'/quotes/{quote_id}')

    def update_quote_status(self, quote_id: str, status: str) -> Dict[str, Any]:
        return self._call('PATCH', f'/quotes/{quote_id}', json={"status": status})

    def create_guest_quote(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._call('POST', '/guest/quotes', json=payload)

    def get_guest_quote(self, token: str) -> Dict[str, Any]:
        return self._call('GET', f'/guest/quotes/{token}')

    def update_guest_quote_status(self, token: str, status: str) -> Dict[str, Any]:
        return self._call('PATCH', f'/guest/quotes/{token}/status', json={"status": status})

    # Uploads
    def upload_file(
        self,
        file_name: str,
        stream: BinaryIO,
        content_type: str = "application/octet-stream",
        quote_id: str = None,
        order_id: str = None,
    ) -> Dict[str, Any]:
        data = {k: v for k, v in {"quote_id": quote_id, "order_id": order_id}.items() if v}
        return self._call('POST', '/uploads', files={"file": (file_name, stream, content_type)}, data=data)

    def get_upload(self, upload_id: str) -> Dict[str, Any]:
        return self._call('GET', f'/uploads/{upload_id}')

    def delete_upload(self, upload_id: str) -> None:
        self._call('DELETE', f'/uploads/{upload_id}')

    # Bookings
    def get_availability(self, start_date: str, end_date: str) -> Dict[str, Any]:
        return self._call('GET', '/calendar/availability', params={"start_date": start_date, "end_date": end_date})

    def list_bookings(self, status: str = None) -> List[Dict[str, Any]]:
        return self._call('GET', '/bookings', params={"status": status} if status else None)

    def create_booking(self, quote_id: str, start_at: str, end_at: str, is_emergency: bool = False) -> Dict[str, Any]:
        payload = {"quote_id": quote_id, "start_at": start_at, "end_at": end_at, "is_emergency": is_emergency}
        return self._call('POST', '/bookings', json=payload)

    def get_booking(self, booking_id: str) -> Dict[str, Any]:
        return self._call('GET', f'/bookings/{booking_id}')

    def update_booking(self, booking_id: str, **changes) -> Dict[str, Any]:
        return self._call('PATCH', f'/bookings/{booking_id}', json=changes)

    # Orders
    def list_orders(self, status: str = None, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        params = {"page": page, "limit": limit}
        if status:
            params["status"] = status
        return self._call('GET', '/orders', params=params)

    def get_order(self, order_id: str) -> Dict[str, Any]:
        return self._call('GET', f'/orders/{order_id}')

    def list_proofs(self, order_id: str) -> List[Dict[str, Any]]:
        return self._call('GET', f'/orders/{order_id}/proofs')

    def list_payments(self, order_id: str) -> List[Dict[str, Any]]:
        return self._call('GET', f'/orders/{order_id}/payments')

    def approve_proof(self, proof_id: str) -> Dict[str, Any]:
        return self._call('POST', f'/proofs/{proof_id}/approve')

    def request_proof_changes(self, proof_id: str, comment: str) -> Dict[str, Any]:
        return self._call('POST', f'/proofs/{proof_id}/request-changes', json={"customer_comment": comment})

    def create_payment_intent(self, order_id: str, amount: float) -> Dict[str, Any]:
        return self._call('POST', '/payments/create-intent', json={"order_id": order_id, "amount": amount})

    def get_invoice(self, invoice_id: str) -> Dict[str, Any]:
        return self._call('GET', f'/invoices/{invoice_id}')

    # Messages
    def list_messages(self, thread_id: str) -> List[Dict[str, Any]]:
        return self._call('GET', f'/message-threads/{thread_id}/messages')

    def send_message(self, thread_id: str, body: str) -> Dict[str, Any]:
        return self._call('POST', f'/message-threads/{thread_id}/messages', json={"body": body})

    def mark_message_read(self, message_id: str) -> Dict[str, Any]:
        return self._call('PATCH', f'/messages/{message_id}/mark-read')

    def unread_count(self) -> int:
        return self._call('GET', '/messages/unread-count')["unread"]

    # Account
    def get_profile(self) -> Dict[str, Any]:
        return self._call('GET', '/users/profile')

    def update_profile(self, **changes) -> Dict[str, Any]:
        return self._call('PATCH', '/users/profile', json=changes)

    def change_password(self, current_password: str, new_password: str) -> Dict[str, Any]:
        payload = {"current_password": current_password, "new_password": new_password}
        return self._call('POST', '/users/change-password', json=payload)

    def get_notification_preferences(self) -> Dict[str, Any]:
        return self._call('GET', '/users/notification-preferences')

    def update_notification_preferences(self, **changes) -> Dict[str, Any]:
        return self._call('PATCH', '/users/notification-preferences', json=changes)

    # Cart & checkout
    def get_cart(self) -> Dict[str, Any]:
        return self._call('GET', '/cart')

    def add_cart_item(self, product_id: str, quantity: int = 1, product_variant_id: str = None, config: Dict[str, Any] = None) -> Dict[str, Any]:
        payload = {"product_id": product_id, "quantity": quantity, "product_variant_id": product_variant_id, "config": config}
        return self._call('POST', '/cart/items', json=payload)

    def update_cart_item(self, item_id: str, **changes) -> Dict[str, Any]:
        return self._call('PATCH', f'/cart/items/{item_id}', json=changes)

    def remove_cart_item(self, item_id: str) -> None:
        self._call('DELETE', f'/cart/items/{item_id}')

    def merge_cart(self) -> Dict[str, Any]:
        return self._call('POST', '/cart/merge')

    def checkout(self, cart_id: str, **details) -> Dict[str, Any]:
        return self._call('POST', '/checkout/product', json={"cart_id": cart_id, **details})

    def create_product_intent(self, cart_id: str, amount: float) -> Dict[str, Any]:
        return self._call('POST', '/payments/create-product-intent', json={"cart_id": cart_id, "amount": amount})

    def get_product_order(self, order_id: str, guest_email: str = None) -> Dict[str, Any]:
        headers = {"X-Guest-Email": guest_email} if guest_email else None
        return self._call('GET', f'/orders/product/{order_id}', headers=headers or {})

    # Dashboard
    def get_dashboard(self) -> Dict[str, Any]:
        return self._call('GET', '/dashboard/summary')
