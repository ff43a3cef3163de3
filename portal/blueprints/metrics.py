"""
Prometheus metrics.

/metrics serves per-endpoint HTTP counters and latency alongside the
order submission and discount validation counters. It carries no
authentication and is exempt from CSRF; keep it on the internal network.
"""
import os
import time

from flask import Blueprint, Response, request, g
from prometheus_client import (
    CONTENT_TYPE_LATEST, REGISTRY, CollectorRegistry, Counter, Histogram, generate_latest, multiprocess
)

metrics_bp = Blueprint('metrics', __name__)

# Under Gunicorn each worker writes to PROMETHEUS_MULTIPROC_DIR and the
# collector merges them at scrape time.
if os.environ.get('PROMETHEUS_MULTIPROC_DIR'):
    registry = CollectorRegistry()
    multiprocess.MultiProcessCollector(registry)
    _register_on = None
else:
    registry = REGISTRY
    _register_on = REGISTRY

http_requests = Counter(
    'portal_http_requests',
    'HTTP requests by endpoint and status',
    ['method', 'endpoint', 'http_status'],
    registry=_register_on
)

http_latency = Histogram(
    'portal_http_request_duration_seconds',
    'HTTP request latency in seconds',
    ['method', 'endpoint'],
    registry=_register_on,
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0)
)

orders_submitted = Counter(
    'portal_orders_submitted',
    'Order submissions by outcome',
    ['result'],
    registry=_register_on
)

discount_validations = Counter(
    'portal_discount_validations',
    'Discount code validations by outcome',
    ['result'],
    registry=_register_on
)


def record_order_submission(result: str) -> None:
    """result: success | allocation_error | total_failure | partial_failure"""
    orders_submitted.labels(result=result).inc()


def record_discount_validation(result: str) -> None:
    """result: applied, or the error code of the rejection"""
    discount_validations.labels(result=result).inc()


def setup_metrics_instrumentation(app):
    """Time every request and count it by endpoint name."""

    @app.before_request
    def start_timer():
        g._metrics_started = time.perf_counter()

    @app.after_request
    def observe_request(response):
        started = g.pop('_metrics_started', None)
        if started is None or request.endpoint == 'metrics.metrics':
            return response
        endpoint = request.endpoint or 'unknown'
        http_latency.labels(request.method, endpoint).observe(time.perf_counter() - started)
        http_requests.labels(request.method, endpoint, response.status_code).inc()
        return response


@metrics_bp.route('/metrics')
def metrics():
    return Response(generate_latest(registry), mimetype=CONTENT_TYPE_LATEST)
