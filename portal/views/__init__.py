"""Presentation helpers: plain data shaping over API responses."""
from portal.views.dashboard import build_dashboard, summary_cards
from portal.views.mockup import check_artwork, get_templates, pixel_size
from portal.views.modal import Modal, ModalStack
from portal.views.navigation import active_tab, visible_tabs
from portal.views.pricing import build_pricing_table
from portal.views.quote_detail import build_quote_detail, customer_actions

__all__ = [
    'build_dashboard',
    'summary_cards',
    'check_artwork',
    'get_templates',
    'pixel_size',
    'Modal',
    'ModalStack',
    'active_tab',
    'visible_tabs',
    'build_pricing_table',
    'build_quote_detail',
    'customer_actions',
]
