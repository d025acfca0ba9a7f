"""
Unit tests for application metrics.
"""


class TestMetrics:
    """Tests for the Metrics dataclass."""

    def test_increment_and_decrement(self):
        from storefront.core.metrics import Metrics

        m = Metrics()
        m.increment("quotes_created")
        m.increment("quotes_created", 2)
        m.increment("websocket_connections")
        m.decrement("websocket_connections")
        m.decrement("websocket_connections")

        assert m.quotes_created == 3
        assert m.websocket_connections == 0

    def test_login_success_rate(self):
        from storefront.core.metrics import Metrics

        m = Metrics()
        assert m.login_success_rate == 1.0
        m.increment("logins", 3)
        m.increment("logins_failed")
        assert m.login_success_rate == 0.75

    def test_latency_stats(self):
        from storefront.core.metrics import Metrics

        m = Metrics()
        for value in (10.0, 30.0, 20.0):
            m.record_latency("checkout", value)

        stats = m.get_latency_stats("checkout")
        assert stats["count"] == 3
        assert stats["min"] == 10.0
        assert stats["max"] == 30.0
        assert stats["avg"] == 20.0
        assert m.get_latency_stats("unknown")["count"] == 0

    def test_latency_samples_are_capped(self):
        from storefront.core.metrics import Metrics

        m = Metrics()
        m._max_latency_samples = 5
        for value in range(10):
            m.record_latency("op", float(value))
        assert m.latencies["op"] == [5.0, 6.0, 7.0, 8.0, 9.0]

    def test_to_dict_and_reset(self):
        from storefront.core.metrics import COUNTERS, Metrics

        m = Metrics()
        m.increment("orders_created")
        m.record_latency("quote", 5.0)

        data = m.to_dict()
        for name in COUNTERS:
            assert name in data
        assert data["orders_created"] == 1
        assert data["latencies"]["quote"]["count"] == 1

        m.reset()
        assert m.orders_created == 0
        assert m.latencies == {}
