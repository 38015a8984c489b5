"""
Prometheus Metrics Module

Exposes metrics for monitoring the Tito sync service.

Metrics:
- Counters: requests, pages, tickets inserted/deferred, runs
- Histograms: request duration, run duration
- Gauges: active runs

Usage:
    from tito_sync.metrics import metrics

    # Record HTTP request
    metrics.record_http_request(status=200, duration=0.5)

    # Track a run
    async with metrics.track_sync("dddperth-2026"):
        await orchestrator.run()

    # Start metrics server
    await metrics.start_server(port=9090)
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import aiohttp.web as web
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from tito_sync.config import settings

logger = logging.getLogger(__name__)


class MetricsCollector:
    """
    Prometheus metrics collector for the Tito sync service.

    Every collector owns its registry, so several instances (tests,
    embedded use) never clash on metric names.
    """

    def __init__(self, enabled: bool = True) -> None:
        """
        Initialize metrics collector.

        Args:
            enabled: Whether to collect metrics
        """
        self.enabled = enabled
        self.registry = CollectorRegistry()
        self._runner: web.AppRunner | None = None

        self.http_requests_total = Counter(
            "tito_sync_http_requests_total",
            "Total HTTP requests made to Tito",
            ["status"],
            registry=self.registry,
        )

        self.http_request_duration = Histogram(
            "tito_sync_http_request_duration_seconds",
            "HTTP request duration in seconds",
            buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
            registry=self.registry,
        )

        self.http_errors_total = Counter(
            "tito_sync_http_errors_total",
            "Total HTTP errors",
            ["error_type"],
            registry=self.registry,
        )

        self.pages_fetched_total = Counter(
            "tito_sync_pages_fetched_total",
            "Registration pages fetched and decoded",
            registry=self.registry,
        )

        self.tickets_inserted_total = Counter(
            "tito_sync_tickets_inserted_total",
            "Tickets persisted locally",
            ["partition"],
            registry=self.registry,
        )

        self.tickets_deferred_total = Counter(
            "tito_sync_tickets_deferred_total",
            "New tickets left for a later run because of the batch limit",
            ["partition"],
            registry=self.registry,
        )

        self.sync_duration = Histogram(
            "tito_sync_run_duration_seconds",
            "Sync run duration in seconds",
            ["partition"],
            buckets=(1, 5, 10, 30, 60, 120, 300, 600),
            registry=self.registry,
        )

        self.sync_runs_total = Counter(
            "tito_sync_runs_total",
            "Total sync runs",
            ["partition", "status"],
            registry=self.registry,
        )

        self.active_syncs = Gauge(
            "tito_sync_active_runs",
            "Number of currently active sync runs",
            registry=self.registry,
        )

    # ========== HTTP Metrics ==========

    def record_http_request(self, status: int, duration: float) -> None:
        """Record an HTTP request."""
        if not self.enabled:
            return

        self.http_requests_total.labels(status=str(status)).inc()
        self.http_request_duration.observe(duration)

    def record_http_error(self, error_type: str) -> None:
        """Record an HTTP error."""
        if not self.enabled:
            return

        self.http_errors_total.labels(error_type=error_type).inc()

    def record_page_fetched(self) -> None:
        if not self.enabled:
            return

        self.pages_fetched_total.inc()

    # ========== Ticket Metrics ==========

    def record_tickets(self, partition: str, inserted: int, deferred: int) -> None:
        """Record the outcome of a persist step."""
        if not self.enabled:
            return

        self.tickets_inserted_total.labels(partition=partition).inc(inserted)
        self.tickets_deferred_total.labels(partition=partition).inc(deferred)

    # ========== Sync Metrics ==========

    @asynccontextmanager
    async def track_sync(self, partition: str) -> AsyncIterator[None]:
        """
        Context manager to track run duration and status.

        Usage:
            async with metrics.track_sync("dddperth-2026"):
                await do_sync()
        """
        if not self.enabled:
            yield
            return

        start_time = time.time()
        self.active_syncs.inc()

        try:
            yield
            status = "success"
        except Exception:
            status = "error"
            raise
        finally:
            self.active_syncs.dec()
            self.sync_duration.labels(partition=partition).observe(time.time() - start_time)
            self.sync_runs_total.labels(partition=partition, status=status).inc()

    # ========== Metrics Server ==========

    async def start_server(self, port: int = 9090) -> None:
        """
        Start HTTP server to expose metrics.

        Args:
            port: Port to listen on (default 9090)
        """
        if not self.enabled:
            logger.info("Metrics disabled, metrics server not started")
            return

        async def metrics_handler(request: web.Request) -> web.Response:
            """Handle /metrics endpoint."""
            output = generate_latest(self.registry)
            return web.Response(body=output, headers={"Content-Type": CONTENT_TYPE_LATEST})

        async def health_handler(request: web.Request) -> web.Response:
            """Handle /health endpoint."""
            return web.Response(text="OK")

        app = web.Application()
        app.router.add_get("/metrics", metrics_handler)
        app.router.add_get("/health", health_handler)

        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, "0.0.0.0", port)
        await site.start()

        logger.info("Metrics server started on port %d", port)

    async def stop_server(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None

    def get_sample(self, name: str, labels: dict[str, str] | None = None) -> float:
        """Read a single sample value from the registry (0.0 when absent)."""
        value = self.registry.get_sample_value(name, labels or {})
        return value or 0.0


# Global metrics instance
metrics = MetricsCollector(enabled=settings.metrics_enabled)
