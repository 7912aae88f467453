"""
Prometheus 指标
"""
from prometheus_client import Counter, Histogram, Gauge

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "path"],
)
IN_PROGRESS = Gauge(
    "http_requests_in_progress",
    "HTTP requests in progress",
)

# 业务指标
PUBLICATIONS_REVERTED = Counter(
    "vestisen_publications_reverted_total",
    "Paid publications reverted to the default tier after expiry",
)
CREDIT_PURCHASES_CONFIRMED = Counter(
    "vestisen_credit_purchases_confirmed_total",
    "Confirmed credit purchases",
    ["payment_method"],
)


def get_route_name(scope: dict) -> str:
    """使用路由模板作为标签，避免 ID 造成标签爆炸"""
    route = scope.get("route")
    if route and hasattr(route, "path"):
        return route.path
    return scope.get("path", "unknown")
