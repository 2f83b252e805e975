"""
Tests for the metrics registry.
"""

import pytest

from upload_converter.observability.metrics import Counter, Histogram, MetricsRegistry


class TestCounter:

    def test_increment(self):
        counter = Counter("test_counter")

        counter.inc()
        counter.inc(4)

        assert counter.get() == 5

    def test_labels_tracked_separately(self):
        counter = Counter("test_counter")

        counter.inc(labels={"status": "converted"})
        counter.inc(labels={"status": "converted"})
        counter.inc(labels={"status": "failed"})

        assert counter.get({"status": "converted"}) == 2
        assert counter.get({"status": "failed"}) == 1
        assert counter.get({"status": "disabled"}) == 0
        assert counter.total() == 3

    def test_cannot_decrease(self):
        with pytest.raises(ValueError):
            Counter("test_counter").inc(-1)


class TestHistogram:

    def test_count_and_sum(self):
        hist = Histogram("test_seconds")

        hist.observe(0.2)
        hist.observe(1.5)

        assert hist.count() == 2
        assert hist.sum() == pytest.approx(1.7)

    def test_buckets_are_cumulative_on_export(self):
        hist = Histogram("test_seconds", buckets=(0.1, 1, float("inf")))
        hist.observe(0.05)
        hist.observe(0.5)
        hist.observe(5)

        buckets = {
            p.labels["le"]: p.value for p in hist.export() if p.name == "test_seconds_bucket"
        }

        assert buckets == {"0.1": 1, "1": 2, "+Inf": 3}


class TestMetricsRegistry:

    def test_common_metrics_registered(self):
        registry = MetricsRegistry()

        output = registry.export_prometheus()

        assert "# TYPE upload_converter_conversions_total counter" in output
        assert "# TYPE upload_converter_bytes_saved_total counter" in output
        assert "# TYPE upload_converter_conversion_duration_seconds histogram" in output

    def test_prometheus_labels(self):
        registry = MetricsRegistry()
        registry.increment("conversions_total", labels={"status": "kept_original"})
        registry.timing("conversion_duration_seconds", 0.3, labels={"status": "kept_original"})

        output = registry.export_prometheus()

        assert 'upload_converter_conversions_total{status="kept_original"} 1.0' in output
        assert 'upload_converter_conversion_duration_seconds_count{status="kept_original"} 1' in output

    def test_json_export(self):
        registry = MetricsRegistry(prefix="x")
        registry.increment("bytes_saved_total", 2048)
        registry.timing("conversion_duration_seconds", 0.5)

        data = registry.export_json()

        assert data["counters"]["x_bytes_saved_total"] == {"total": 2048}
        assert data["histograms"]["x_conversion_duration_seconds"] == {"sum": 0.5, "count": 1}

    def test_reset_keeps_definitions(self):
        registry = MetricsRegistry()
        registry.increment("conversions_total", labels={"status": "converted"})

        registry.reset()

        assert registry.counter("conversions_total").total() == 0
        assert "upload_converter_conversions_total" in registry.export_json()["counters"]
