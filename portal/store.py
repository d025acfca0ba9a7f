"""Global client store for the SultanStamp portal.

Holds authentication, cart identity, UI (toasts and modals) and realtime
state in one place and keeps the API client's credentials in sync with it.
The realtime listener thread calls into the store, so every mutation runs
under a lock and subscribers are notified after each change.

Example:
    >>> store = PortalStore(PortalAPIClient())
    >>> store.initialize_auth(saved_token)
    >>> store.subscribe(lambda s: render(s))
"""

import logging
import random
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from portal.api_client import PortalAPIClient
from portal.config import config
from portal.exceptions import APIError, AuthenticationError, PortalError
from portal.views.modal import ModalStack

logger = logging.getLogger(__name__)

TOAST_TYPES = ("success", "error", "warning", "info")
URGENT_PRIORITIES = ("HIGH", "URGENT")


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class Toast:
    id: str
    type: str
    message: str
    duration: int
    created_at: int

    def expires_at(self) -> int:
        return self.created_at + self.duration


@dataclass
class AuthState:
    current_user: Optional[Dict[str, Any]] = None
    user_profile: Optional[Dict[str, Any]] = None
    auth_token: Optional[str] = None
    is_authenticated: bool = False
    is_loading: bool = False
    error_message: Optional[str] = None

    @property
    def status(self) -> str:
        """One of 'authenticated', 'loading' or 'anonymous'."""
        if self.is_authenticated:
            return "authenticated"
        if self.is_loading:
            return "loading"
        return "anonymous"


@dataclass
class CartState:
    guest_id: Optional[str] = None
    cart_id: Optional[str] = None
    item_count: int = 0
    subtotal: float = 0.0


@dataclass
class UIState:
    toast_queue: List[Toast] = field(default_factory=list)
    modal_stack: ModalStack = field(default_factory=ModalStack)


@dataclass
class RealtimeState:
    is_connected: bool = False
    unread_messages: int = 0
    notifications: List[Dict[str, Any]] = field(default_factory=list)
    last_event_at: Optional[int] = None


class PortalStore:
    """Application state shared by every portal view."""

    def __init__(self, client: Optional[PortalAPIClient] = None, guest_id: Optional[str] = None):
        self.client = client or PortalAPIClient()
        self.auth = AuthState()
        self.cart = CartState(guest_id=guest_id)
        self.ui = UIState()
        self.realtime = RealtimeState()
        self._lock = threading.RLock()
        self._subscribers: List[Callable[["PortalStore"], None]] = []
        self._token_listeners: List[Callable[[Optional[str]], None]] = []
        self._announced_token: Optional[str] = None
        self.client.guest_id = guest_id

    # ---------- subscriptions ----------

    def subscribe(self, callback: Callable[["PortalStore"], None]) -> Callable[[], None]:
        """Register a change listener; returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def on_token_change(self, callback: Callable[[Optional[str]], None]) -> None:
        """Call ``callback`` with the session token whenever sign-in state changes it."""
        with self._lock:
            if callback not in self._token_listeners:
                self._token_listeners.append(callback)

    def _notify(self) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(self)
            except Exception as e:
                logger.error(f"Store subscriber failed: {e}", exc_info=True)

    # ---------- auth ----------

    def _set_loading(self) -> None:
        with self._lock:
            self.auth.is_loading = True
            self.auth.is_authenticated = False
            self.auth.error_message = None
        self._notify()

    def _set_authenticated(self, user: Dict[str, Any], profile: Optional[Dict[str, Any]], token: str) -> None:
        with self._lock:
            self.auth = AuthState(
                current_user=user,
                user_profile=profile,
                auth_token=token,
                is_authenticated=True,
            )
            self.client.token = token
        self._notify()
        self._announce_token()

    def _set_anonymous(self, error_message: Optional[str] = None, keep_token: bool = False) -> None:
        with self._lock:
            token = self.auth.auth_token if keep_token else None
            self.auth = AuthState(auth_token=token, error_message=error_message)
            self.client.token = token
        self._notify()
        self._announce_token()

    def _announce_token(self) -> None:
        with self._lock:
            token = self.auth.auth_token if self.auth.is_authenticated else None
            if token == self._announced_token:
                return
            self._announced_token = token
            listeners = list(self._token_listeners)
        for callback in listeners:
            try:
                callback(token)
            except Exception as e:
                logger.error(f"Token listener failed: {e}", exc_info=True)

    def login(self, email: str, password: str, role: Optional[str] = None) -> Dict[str, Any]:
        """
        Sign in and adopt the returned token.

        A guest cart collected before signing in is merged into the
        account's cart.

        Raises:
            APIError: Credentials rejected or the request failed
        """
        self._set_loading()
        try:
            result = self.client.login(email, password, role=role)
        except PortalError as e:
            self._set_anonymous(error_message=e.message)
            raise
        self._set_authenticated(result["user"], result.get("profile"), result["token"])
        self._merge_guest_cart()
        return result

    def register(self, name: str, email: str, password: str, **profile) -> Dict[str, Any]:
        self._set_loading()
        try:
            result = self.client.register(name, email, password, **profile)
        except PortalError as e:
            self._set_anonymous(error_message=e.message)
            raise
        self._set_authenticated(result["user"], result.get("customer_profile"), result["token"])
        self._merge_guest_cart()
        return result

    def logout(self) -> None:
        """Drop the session locally; the server session is revoked when reachable."""
        if self.auth.auth_token:
            try:
                self.client.logout()
            except PortalError as e:
                logger.warning(f"Server logout failed, clearing local session anyway: {e.message}")
        with self._lock:
            self.realtime = RealtimeState(is_connected=self.realtime.is_connected)
            self.cart = CartState(guest_id=self.cart.guest_id)
        self._set_anonymous()

    def initialize_auth(self, stored_token: Optional[str]) -> str:
        """
        Restore a session from a persisted token.

        The token is validated with ``/auth/me``; a 401 clears it. Other
        failures keep the token so a later retry can succeed.

        Returns:
            The resulting auth status
        """
        if not stored_token:
            self._set_anonymous()
            return self.auth.status

        with self._lock:
            self.auth.auth_token = stored_token
            self.client.token = stored_token
        self._set_loading()
        try:
            result = self.client.me()
        except AuthenticationError:
            logger.info("Stored token rejected, clearing session")
            self._set_anonymous()
            return self.auth.status
        except PortalError as e:
            self._set_anonymous(error_message=e.message, keep_token=True)
            return self.auth.status

        self._set_authenticated(result["user"], result.get("profile"), stored_token)
        return self.auth.status

    def update_profile(self, **changes) -> Dict[str, Any]:
        profile = self.client.update_profile(**changes)
        with self._lock:
            self.auth.user_profile = profile
            if "name" in changes and self.auth.current_user is not None:
                self.auth.current_user = {**self.auth.current_user, "name": changes["name"]}
        self._notify()
        return profile

    # ---------- cart ----------

    def _adopt_cart(self, view: Dict[str, Any]) -> None:
        with self._lock:
            cart = view.get("cart") or {}
            items = view.get("items") or []
            self.cart.cart_id = cart.get("id")
            self.cart.item_count = sum(int(item.get("quantity") or 0) for item in items)
            self.cart.subtotal = float(view.get("subtotal") or 0)
            if not self.auth.is_authenticated and view.get("guest_id"):
                self.cart.guest_id = view["guest_id"]
                self.client.guest_id = view["guest_id"]

    def refresh_cart(self) -> CartState:
        """Reload the cart summary (creating the cart and guest id if needed)."""
        self._adopt_cart(self.client.get_cart())
        self._notify()
        return self.cart

    def _merge_guest_cart(self) -> None:
        if not self.cart.guest_id:
            return
        try:
            view = self.client.merge_cart()
        except APIError as e:
            logger.warning(f"Guest cart merge failed: {e.message}")
            return
        with self._lock:
            self.cart.guest_id = None
            self.client.guest_id = None
        self._adopt_cart(view)
        self._notify()

    # ---------- toasts & modals ----------

    def show_toast(self, message: str, toast_type: str = "info", duration: Optional[int] = None) -> Toast:
        """Queue a toast; only the newest five are kept."""
        if toast_type not in TOAST_TYPES:
            toast_type = "info"
        now = _now_ms()
        toast = Toast(
            id=f"toast_{now}_{random.random()}",
            type=toast_type,
            message=message,
            duration=duration or config.TOAST_DEFAULT_DURATION_MS,
            created_at=now,
        )
        with self._lock:
            self.ui.toast_queue = (self.ui.toast_queue + [toast])[-config.TOAST_QUEUE_LIMIT:]
        self._notify()
        return toast

    def dismiss_toast(self, toast_id: str) -> None:
        with self._lock:
            self.ui.toast_queue = [t for t in self.ui.toast_queue if t.id != toast_id]
        self._notify()

    def expire_toasts(self, now: Optional[int] = None) -> int:
        """Drop toasts whose duration elapsed; returns how many were removed."""
        now = _now_ms() if now is None else now
        with self._lock:
            before = len(self.ui.toast_queue)
            self.ui.toast_queue = [t for t in self.ui.toast_queue if t.expires_at() > now]
            removed = before - len(self.ui.toast_queue)
        if removed:
            self._notify()
        return removed

    def open_modal(self, modal_type: str, props: Optional[Dict[str, Any]] = None) -> None:
        with self._lock:
            self.ui.modal_stack.open(modal_type, props)
        self._notify()

    def close_modal(self) -> None:
        with self._lock:
            self.ui.modal_stack.close()
        self._notify()

    def close_all_modals(self) -> None:
        with self._lock:
            self.ui.modal_stack.close_all()
        self._notify()

    # ---------- realtime ----------

    def set_realtime_connected(self, connected: bool) -> None:
        with self._lock:
            if self.realtime.is_connected == connected:
                return
            self.realtime.is_connected = connected
        self._notify()

    def set_unread_messages(self, count: int) -> None:
        with self._lock:
            self.realtime.unread_messages = max(0, count)
        self._notify()

    def add_notification(self, notification: Dict[str, Any]) -> None:
        with self._lock:
            self.realtime.notifications = ([notification] + self.realtime.notifications)[:config.NOTIFICATION_LIMIT]
        if notification.get("priority") in URGENT_PRIORITIES and notification.get("message"):
            self.show_toast(notification["message"], "info")
        else:
            self._notify()

    def handle_realtime_event(self, channel: str, data: Dict[str, Any]) -> bool:
        """
        Apply a server event to the store.

        Returns:
            False for channels the portal does not handle
        """
        data = data or {}
        if channel == "order/status_updated":
            status = str(data.get("new_status", "")).replace("_", " ").lower()
            self.show_toast(f"Order status updated to {status}", "info")
        elif channel == "message/received":
            own_id = (self.auth.current_user or {}).get("id")
            if not own_id or data.get("sender_user_id") != own_id:
                with self._lock:
                    self.realtime.unread_messages += 1
                self.show_toast(f"New message from {data.get('sender_name') or 'SultanStamp'}", "info")
        elif channel == "proof/uploaded":
            version = data.get("version_number")
            self.show_toast(f"Proof version {version} uploaded" if version else "A new proof was uploaded", "info")
        elif channel == "quote/finalized":
            total = data.get("total_amount")
            suffix = f": total {config.CURRENCY_SYMBOL}{float(total):.2f}" if total is not None else ""
            self.show_toast(f"Your quote has been finalized{suffix}", "success")
        elif channel == "booking/confirmed":
            self.show_toast("Your booking has been confirmed", "success")
        elif channel == "notification/new":
            self.add_notification(data)
        else:
            logger.debug(f"Ignoring realtime channel {channel}")
            return False

        with self._lock:
            self.realtime.last_event_at = _now_ms()
        return True
