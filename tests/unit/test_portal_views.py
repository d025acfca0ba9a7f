"""
Unit tests for portal presentation helpers.
"""
import pytest


class TestPricingTable:

    TIERS = [
        {
            "tier": {"id": "t2", "slug": "standard", "name": "Standard", "sort_order": 2},
            "features": [
                {"group_name": "Design", "feature_key": "revisions", "feature_label": "Revisions",
                 "feature_value": "2", "is_included": True, "sort_order": 1},
                {"group_name": "Support", "feature_key": "priority", "feature_label": "Priority support",
                 "feature_value": None, "is_included": True, "sort_order": 2},
            ],
        },
        {
            "tier": {"id": "t1", "slug": "basic", "name": "Basic", "sort_order": 1},
            "features": [
                {"group_name": "Design", "feature_key": "revisions", "feature_label": "Revisions",
                 "feature_value": "0", "is_included": True, "sort_order": 1},
                {"group_name": "Support", "feature_key": "priority", "feature_label": "Priority support",
                 "feature_value": None, "is_included": False, "sort_order": 2},
            ],
        },
    ]

    def test_tiers_sorted_and_grouped(self):
        from portal.views.pricing import build_pricing_table

        table = build_pricing_table(self.TIERS)

        assert [t["slug"] for t in table.tiers] == ["basic", "standard"]
        assert [g.name for g in table.groups] == ["Design", "Support"]
        assert table.groups[0].rows[0].cells == ["0", "2"]

    def test_cells(self):
        from portal.views.pricing import build_pricing_table

        table = build_pricing_table(self.TIERS)
        assert table.cell("priority", "basic") is None
        assert table.cell("priority", "standard") == "Included"
        assert table.cell("revisions", "premium") is None

    def test_missing_feature_gives_empty_cell(self):
        from portal.views.pricing import build_pricing_table

        tiers = self.TIERS + [{"tier": {"slug": "premium", "name": "Premium", "sort_order": 3}, "features": []}]
        table = build_pricing_table(tiers)
        assert table.cell("revisions", "premium") is None


class TestQuoteDetail:

    DETAIL = {
        "quote": {"id": "q1", "status": "IN_REVIEW", "final_subtotal": None},
        "service": {"name": "Business Cards"},
        "tier": {"name": "Standard"},
        "quote_answers": [
            {"option_key": "special_notes", "value": "Rush"},
            {"option_key": "finish", "value": "matte"},
            {"option_key": "quantity", "value": "500"},
        ],
        "message_thread": {"id": "thread-1"},
    }
    OPTIONS = [
        {"key": "quantity", "label": "Quantity", "sort_order": 1},
        {"key": "finish", "label": "Finish", "sort_order": 2},
    ]

    def test_answers_follow_option_order(self):
        from portal.views.quote_detail import build_quote_detail

        view = build_quote_detail(self.DETAIL, self.OPTIONS)

        assert view.answers == [("Quantity", "500"), ("Finish", "matte"), ("Special notes", "Rush")]
        assert view.service_name == "Business Cards"
        assert view.badge == ("In review", "yellow")
        assert view.message_thread_id == "thread-1"

    @pytest.mark.parametrize("quote,expected", [
        ({"status": "SUBMITTED", "final_subtotal": None}, ["REJECT"]),
        ({"status": "IN_REVIEW", "final_subtotal": 120.0}, ["APPROVE", "REJECT"]),
        ({"status": "APPROVED", "final_subtotal": 120.0}, []),
        ({"status": "REJECTED", "final_subtotal": None}, []),
    ])
    def test_customer_actions(self, quote, expected):
        from portal.views.quote_detail import customer_actions

        assert customer_actions(quote) == expected

    def test_unknown_status_badge(self):
        from portal.views.quote_detail import status_badge

        assert status_badge("ON_HOLD") == ("On hold", "gray")


class TestMockups:

    def test_templates_by_slug(self):
        from portal.views.mockup import get_template, get_templates

        assert [t.id for t in get_templates("Business-Cards")] == ["bc-desk-front", "bc-hand-front"]
        assert get_templates("mugs") == []
        assert get_template("st-laptop").label == "On Laptop"
        assert get_template("missing") is None

    def test_pixel_size_includes_bleed(self):
        from portal.views.mockup import PRINT_SPECS, pixel_size

        print_spec = PRINT_SPECS["business-cards"]
        assert (print_spec.full_width_mm, print_spec.full_height_mm) == (89, 59)
        assert pixel_size(print_spec) == (1051, 697)
        assert pixel_size(print_spec, include_bleed=False) == (1004, 650)

    def test_check_artwork(self):
        from portal.views.mockup import check_artwork

        sharp = check_artwork("business-cards", 1100, 700)
        assert sharp["dpi_warning"] is False

        blurry = check_artwork("business-cards", 500, 330)
        assert blurry["dpi_warning"] is True
        assert blurry["effective_dpi"] < 300
        assert blurry["required_px"] == (1051, 697)

    def test_unknown_product_is_not_checked(self):
        from portal.views.mockup import check_artwork

        assert check_artwork("mugs", 10, 10) == {"effective_dpi": None, "dpi_warning": False, "required_px": None}


class TestNavigation:

    def test_signed_out_tabs_show_cart_badge(self):
        from portal.views.navigation import visible_tabs

        tabs = visible_tabs(False, unread_messages=3, cart_items=2)
        assert [t.key for t in tabs] == ["shop", "services", "cart", "login"]
        assert next(t for t in tabs if t.key == "cart").badge_text == "2"

    def test_signed_in_tabs_cap_badge(self):
        from portal.views.navigation import visible_tabs

        tabs = visible_tabs(True, unread_messages=12)
        assert [t.key for t in tabs] == ["home", "orders", "quotes", "messages", "more"]
        assert next(t for t in tabs if t.key == "messages").badge_text == "9+"
        assert next(t for t in tabs if t.key == "orders").badge_text == ""

    @pytest.mark.parametrize("path,expected", [
        ("/app", "home"),
        ("/app/orders/123", "orders"),
        ("/app/quotes", "quotes"),
        ("/app/settings/profile", "more"),
        ("/shop", ""),
    ])
    def test_active_tab(self, path, expected):
        from portal.views.navigation import active_tab

        assert active_tab(path) == expected


class TestModalStack:

    def test_lifo(self):
        from portal.views.modal import ModalStack

        stack = ModalStack()
        assert stack.close() is None
        stack.open("login")
        stack.open("upload", {"quote_id": "q1"})
        assert stack.types() == ["login", "upload"]
        assert stack.close().props == {"quote_id": "q1"}
        assert len(stack) == 1


class TestDashboard:

    RESPONSE = {
        "summary": {
            "active_orders_count": 2,
            "pending_quotes_count": 1,
            "upcoming_bookings_count": 1,
            "next_booking_date": "2026-10-20T09:00:00",
            "balance_due_amount": 1234.5,
            "unread_messages_count": 0,
        },
        "recent_activity": [
            {"id": "o1", "type": "order", "message": "Order status: PAID", "timestamp": "2026-10-18T12:30:00"},
        ],
        "next_actions": [
            {"action_type": "PAY_DEPOSIT", "message": "Pay", "link": "/app/orders/o1", "priority": "HIGH"},
        ],
    }

    def test_build_dashboard(self):
        from portal.views.dashboard import build_dashboard

        view = build_dashboard(self.RESPONSE)
        cards = {c.key: c.value for c in view["cards"]}

        assert cards["balance_due"] == "€1,234.50"
        assert cards["bookings"] == "1 (next 20 Oct 2026, 09:00)"
        assert view["activity"][0]["when"] == "18 Oct 2026, 12:30"
        assert view["primary_action"]["action_type"] == "PAY_DEPOSIT"

    def test_empty_dashboard(self):
        from portal.views.dashboard import build_dashboard

        view = build_dashboard({"summary": {}, "recent_activity": [], "next_actions": []})
        assert view["primary_action"] is None
        assert {c.key: c.value for c in view["cards"]}["balance_due"] == "€0.00"

    def test_format_date_passthrough(self):
        from portal.views.dashboard import format_date

        assert format_date(None) is None
        assert format_date("tomorrow") == "tomorrow"
