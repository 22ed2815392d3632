"""Prometheus metrics for monitoring"""
from prometheus_client import Counter, Histogram, Gauge, CollectorRegistry
import time
from functools import wraps
from typing import Callable

registry = CollectorRegistry()

request_count = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status'],
    registry=registry
)

request_duration = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    registry=registry
)

collaborator_calls = Counter(
    'collaborator_calls_total',
    'Total calls to external services',
    ['service', 'operation', 'status'],
    registry=registry
)

collaborator_duration = Histogram(
    'collaborator_call_duration_seconds',
    'External service call duration in seconds',
    ['service', 'operation'],
    registry=registry
)

side_effect_failures = Counter(
    'side_effect_failures_total',
    'Best-effort side effects that failed without failing the request',
    ['effect'],
    registry=registry
)

quotes_calculated = Counter(
    'quotes_calculated_total',
    'Total price quotes calculated',
    ['service_type'],
    registry=registry
)

status_transitions = Counter(
    'order_status_transitions_total',
    'Applied order status transitions',
    ['from_status', 'to_status'],
    registry=registry
)

cache_hits = Counter(
    'cache_hits_total',
    'Total cache hits',
    ['cache_key'],
    registry=registry
)

cache_misses = Counter(
    'cache_misses_total',
    'Total cache misses',
    ['cache_key'],
    registry=registry
)

rate_limit_exceeded = Counter(
    'rate_limit_exceeded_total',
    'Total rate limit exceeded events',
    ['caller_id'],
    registry=registry
)

webhook_deliveries = Counter(
    'webhook_deliveries_total',
    'Total webhook delivery attempts',
    ['status', 'retry_count'],
    registry=registry
)

notion_events = Counter(
    'notion_webhook_events_total',
    'Notion change events received',
    ['event_type'],
    registry=registry
)

audit_logs_created = Counter(
    'audit_logs_created_total',
    'Total audit logs created',
    ['action'],
    registry=registry
)

redis_connected = Gauge(
    'redis_connected',
    'Redis connection status (1=connected, 0=disconnected)',
    registry=registry
)


def track_collaborator_call(service: str, operation: str):
    """Decorator to track external service call metrics"""
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                result = await func(*args, **kwargs)
                collaborator_calls.labels(
                    service=service,
                    operation=operation,
                    status='success'
                ).inc()
                return result
            except Exception:
                collaborator_calls.labels(
                    service=service,
                    operation=operation,
                    status='error'
                ).inc()
                raise
            finally:
                collaborator_duration.labels(
                    service=service,
                    operation=operation
                ).observe(time.time() - start_time)
        return wrapper
    return decorator


def get_metrics_text() -> str:
    """Generate Prometheus metrics in text format"""
    from prometheus_client import generate_latest
    return generate_latest(registry).decode('utf-8')
