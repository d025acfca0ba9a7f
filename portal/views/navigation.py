"""Footer links and the mobile tab bar."""
from dataclasses import dataclass
from typing import List

ANY = "any"
SIGNED_IN = "signed_in"
SIGNED_OUT = "signed_out"


@dataclass(frozen=True)
class Tab:
    key: str
    label: str
    path: str
    audience: str = ANY
    badge: int = 0

    @property
    def badge_text(self) -> str:
        if self.badge <= 0:
            return ""
        return "9+" if self.badge >= 10 else str(self.badge)


TABS = (
    Tab("home", "Home", "/app", SIGNED_IN),
    Tab("orders", "Orders", "/app/orders", SIGNED_IN),
    Tab("quotes", "Quotes", "/app/quotes", SIGNED_IN),
    Tab("messages", "Messages", "/app/messages", SIGNED_IN),
    Tab("more", "More", "/app/settings", SIGNED_IN),
    Tab("shop", "Shop", "/shop", SIGNED_OUT),
    Tab("services", "Services", "/services", SIGNED_OUT),
    Tab("cart", "Cart", "/cart", SIGNED_OUT),
    Tab("login", "Sign in", "/login", SIGNED_OUT),
)

FOOTER_LINKS = (
    ("Privacy", "/policies?section=privacy"),
    ("Terms", "/policies?section=terms"),
    ("Refunds", "/policies?section=refunds"),
    ("Contact", "/contact"),
)


def visible_tabs(is_authenticated: bool, unread_messages: int = 0, cart_items: int = 0) -> List[Tab]:
    """Tabs for the current auth state with Messages and Cart badges filled in."""
    audience = SIGNED_IN if is_authenticated else SIGNED_OUT
    tabs = []
    for tab in TABS:
        if tab.audience not in (ANY, audience):
            continue
        if tab.key == "messages":
            tab = Tab(tab.key, tab.label, tab.path, tab.audience, badge=unread_messages)
        elif tab.key == "cart":
            tab = Tab(tab.key, tab.label, tab.path, tab.audience, badge=cart_items)
        tabs.append(tab)
    return tabs


def active_tab(pathname: str) -> str:
    """Key of the tab that owns ``pathname``."""
    if pathname in ("/app", "/app/"):
        return "home"
    for key, prefix in (("orders", "/app/orders"), ("quotes", "/app/quotes"),
                        ("messages", "/app/messages"), ("more", "/app/settings")):
        if pathname.startswith(prefix):
            return key
    return ""
