"""
SultanStamp portal: Python client for the storefront API.
"""
from portal.api_client import PortalAPIClient
from portal.config import config
from portal.realtime import RealtimeListener
from portal.store import PortalStore

__all__ = ['PortalAPIClient', 'PortalStore', 'RealtimeListener', 'config']
