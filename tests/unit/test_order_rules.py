"""
Unit tests for order helpers: revision allowances, invoice numbers,
upload names and shared service utilities.
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest


class TestRevisionLimits:

    @pytest.mark.parametrize("slug,expected", [
        ("basic", 0),
        ("standard", 2),
        ("Standard", 2),
        ("premium", None),
        ("enterprise", None),
        ("mystery", 0),
        (None, 0),
    ])
    def test_revision_limit_for(self, slug, expected):
        from storefront.services.order_service import revision_limit_for

        assert revision_limit_for(slug) == expected


class TestInvoiceAllocation:

    def test_retries_until_unused(self):
        from storefront.services.order_service import allocate_invoice_number

        db = MagicMock()
        db.query.return_value.filter.return_value.first.side_effect = [("taken",), None]
        with patch("storefront.services.order_service.generate_invoice_number",
                   side_effect=["INV-2026-00001", "INV-2026-00002"]):
            assert allocate_invoice_number(db, "INV", 2026) == "INV-2026-00002"

    def test_gives_up_after_attempts(self):
        from storefront.core.exceptions import ConflictError
        from storefront.services.order_service import allocate_invoice_number

        db = MagicMock()
        db.query.return_value.filter.return_value.first.return_value = ("taken",)
        with pytest.raises(ConflictError):
            allocate_invoice_number(db, "INV", 2026)


class TestUploadNames:

    @pytest.mark.parametrize("raw,expected", [
        ("logo.png", "logo.png"),
        ("../../etc/passwd", "passwd"),
        ("C:\\Users\\me\\art work.pdf", "art_work.pdf"),
        ("caf\u00e9 menu.ai", "caf__menu.ai"),
        ("...", "file"),
        (None, "file"),
    ])
    def test_sanitize_filename(self, raw, expected):
        from storefront.services.upload_service import sanitize_filename

        assert sanitize_filename(raw) == expected


class TestCommonHelpers:

    def test_money_rounds_to_cents(self):
        from storefront.services.common import money

        assert money(None) == 0.0
        assert money(12.3456) == 12.35

    def test_clamp_page(self):
        from storefront.services.common import clamp_page

        assert clamp_page(None) == (1, 20, 0)
        assert clamp_page(3, 10) == (3, 10, 20)
        assert clamp_page(0, 1000) == (1, 100, 0)

    def test_to_naive_utc(self):
        from storefront.services.common import to_naive_utc

        aware = datetime(2026, 10, 19, 10, 0, tzinfo=timezone(timedelta(hours=1)))
        assert to_naive_utc(aware) == datetime(2026, 10, 19, 9, 0)
        naive = datetime(2026, 10, 19, 10, 0)
        assert to_naive_utc(naive) is naive

    def test_safe_json_loads(self):
        from storefront.services.common import safe_json_loads

        assert safe_json_loads('["a"]') == ["a"]
        assert safe_json_loads("{broken", default={}) == {}
        assert safe_json_loads(None, default=[]) == []
