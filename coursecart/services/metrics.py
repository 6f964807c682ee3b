# -*- coding: utf-8 -*-
"""
Service for managing Prometheus metrics.

Records HTTP request metrics for every route plus fulfillment counters for
the payment webhook, and exposes them on ``/metrics``.
"""

import os
import time
from typing import Optional
from flask import Flask, request, g, current_app, has_app_context
from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram
from prometheus_client.exposition import generate_latest


def init_metrics(app: Flask) -> None:
    """Initialize metrics service and endpoints."""
    service = MetricsService()
    app.extensions['metrics'] = service

    if service.enabled:
        @app.before_request
        def before_request():
            g.metrics_start_time = time.time()

        @app.after_request
        def after_request(response):
            started = getattr(g, 'metrics_start_time', None)
            duration = time.time() - started if started else 0.0
            route = request.url_rule.rule if request.url_rule else 'unmatched'
            service.record_http_request(
                route=route,
                method=request.method,
                status_code=response.status_code,
                duration_seconds=duration
            )
            return response

        @app.route("/metrics")
        def metrics():
            return generate_latest(service.registry), 200, {
                'Content-Type': 'text/plain; version=0.0.4; charset=utf-8'}


def get_metrics_service() -> Optional['MetricsService']:
    """Get the metrics service instance from the current app context."""
    if has_app_context():
        return current_app.extensions.get('metrics')
    return None


class MetricsService:
    """Service for managing Prometheus metrics."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.enabled = os.environ.get(
            "COURSECART_METRICS_ENABLED",
            "true").lower() == "true"
        self.registry = registry if registry is not None else REGISTRY

        if self.enabled:
            self.http_requests_total = Counter(
                "coursecart_http_requests_total",
                "Total number of HTTP requests.",
                ["route", "method", "status"],
                registry=self.registry
            )
            self.http_request_duration_seconds = Histogram(
                "coursecart_http_request_duration_seconds",
                "Duration of HTTP requests in seconds.",
                ["route", "method"],
                registry=self.registry
            )
            self.webhook_events_total = Counter(
                "coursecart_webhook_events_total",
                "Payment webhook deliveries by event type and outcome.",
                ["event_type", "outcome"],
                registry=self.registry
            )
            self.orders_created_total = Counter(
                "coursecart_orders_created_total",
                "Total number of orders materialized from payments.",
                ["currency"],
                registry=self.registry
            )

    def record_http_request(
            self,
            route: str,
            method: str,
            status_code: int,
            duration_seconds: float):
        if self.enabled:
            self.http_requests_total.labels(
                route=route,
                method=method,
                status=status_code).inc()
            self.http_request_duration_seconds.labels(
                route=route, method=method).observe(duration_seconds)

    def record_webhook_event(self, event_type: str, outcome: str):
        if self.enabled:
            self.webhook_events_total.labels(
                event_type=event_type or 'unknown',
                outcome=outcome
            ).inc()

    def record_order_created(self, currency: str):
        if self.enabled:
            self.orders_created_total.labels(currency=currency).inc()

    def get_metrics(self) -> str:
        """Get metrics data as text."""
        if self.enabled:
            return generate_latest(self.registry).decode('utf-8')
        return ""
