"""Customer dashboard cards built from ``GET /dashboard/summary``."""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from portal.config import config


@dataclass
class SummaryCard:
    key: str
    label: str
    value: str
    link: Optional[str] = None


def format_money(amount: Optional[float]) -> str:
    return f"{config.CURRENCY_SYMBOL}{float(amount or 0):,.2f}"


def format_date(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%d %b %Y, %H:%M")
    except ValueError:
        return value


def summary_cards(summary: Dict[str, Any]) -> List[SummaryCard]:
    bookings = str(summary.get("upcoming_bookings_count", 0))
    next_booking = format_date(summary.get("next_booking_date"))
    if next_booking:
        bookings = f"{bookings} (next {next_booking})"
    return [
        SummaryCard("active_orders", "Active orders", str(summary.get("active_orders_count", 0)), "/app/orders"),
        SummaryCard("pending_quotes", "Pending quotes", str(summary.get("pending_quotes_count", 0)), "/app/quotes"),
        SummaryCard("bookings", "Upcoming bookings", bookings, "/app/bookings"),
        SummaryCard("balance_due", "Balance due", format_money(summary.get("balance_due_amount")), "/app/orders"),
        SummaryCard("unread", "Unread messages", str(summary.get("unread_messages_count", 0)), "/app/messages"),
    ]


def build_dashboard(response: Dict[str, Any]) -> Dict[str, Any]:
    """Cards, activity lines and the most urgent action first."""
    actions = response.get("next_actions", [])
    return {
        "cards": summary_cards(response.get("summary", {})),
        "activity": [
            {**item, "when": format_date(item.get("timestamp"))}
            for item in response.get("recent_activity", [])
        ],
        "next_actions": actions,
        "primary_action": actions[0] if actions else None,
    }
