"""Quote detail view model."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

STATUS_BADGES = {
    "SUBMITTED": ("Submitted", "blue"),
    "IN_REVIEW": ("In review", "yellow"),
    "APPROVED": ("Approved", "green"),
    "REJECTED": ("Rejected", "red"),
}

OPEN_STATUSES = ("SUBMITTED", "IN_REVIEW")


@dataclass
class QuoteDetailView:
    quote: Dict[str, Any]
    service_name: Optional[str]
    tier_name: Optional[str]
    answers: List[Tuple[str, str]] = field(default_factory=list)
    badge: Tuple[str, str] = ("Unknown", "gray")
    actions: List[str] = field(default_factory=list)
    uploads: List[Dict[str, Any]] = field(default_factory=list)
    message_thread_id: Optional[str] = None


def status_badge(status: str) -> Tuple[str, str]:
    """(label, colour) for a quote status."""
    return STATUS_BADGES.get(status, (status.replace("_", " ").capitalize(), "gray"))


def customer_actions(quote: Dict[str, Any]) -> List[str]:
    """Decisions the customer may take: approval needs a final price."""
    if quote.get("status") not in OPEN_STATUSES:
        return []
    actions = []
    if quote.get("final_subtotal") is not None:
        actions.append("APPROVE")
    actions.append("REJECT")
    return actions


def humanize_key(key: str) -> str:
    return key.replace("_", " ").replace("-", " ").strip().capitalize()


def build_quote_detail(detail: Dict[str, Any], service_options: Optional[List[Dict[str, Any]]] = None) -> QuoteDetailView:
    """
    Shape ``GET /quotes/{id}`` for display.

    Answers are labelled with the service's option labels when known and
    follow the options' ``sort_order``; unknown keys come last.
    """
    quote = detail["quote"]
    options = {o["key"]: o for o in (service_options or [])}

    def answer_order(answer: Dict[str, Any]):
        option = options.get(answer["option_key"])
        return (0, option.get("sort_order", 0)) if option else (1, answer["option_key"])

    answers = []
    for answer in sorted(detail.get("quote_answers", []), key=answer_order):
        option = options.get(answer["option_key"])
        label = option["label"] if option else humanize_key(answer["option_key"])
        answers.append((label, answer["value"]))

    thread = detail.get("message_thread") or {}
    return QuoteDetailView(
        quote=quote,
        service_name=(detail.get("service") or {}).get("name"),
        tier_name=(detail.get("tier") or {}).get("name"),
        answers=answers,
        badge=status_badge(quote.get("status", "")),
        actions=customer_actions(quote),
        uploads=detail.get("uploads", []),
        message_thread_id=thread.get("id"),
    )
