"""
Middleware for request correlation, metrics and API audit logging
"""
import logging
import time
import uuid

from django.conf import settings
from django.db import connection
from django.utils import timezone
from django.utils.deprecation import MiddlewareMixin
from prometheus_client import Counter, Histogram

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger('audit')


API_REQUEST_COUNT = Counter(
    'clm_api_requests_total',
    'Total API requests',
    ['method', 'path', 'status'],
)
API_REQUEST_LATENCY = Histogram(
    'clm_api_request_latency_seconds',
    'API request latency (seconds)',
    ['method', 'path'],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10),
)


class RequestIdMiddleware(MiddlewareMixin):
    """Attach a request id for correlation across logs/traces."""

    HEADER = 'X-Request-ID'

    def process_request(self, request):
        rid = request.META.get('HTTP_X_REQUEST_ID')
        if not rid:
            rid = str(uuid.uuid4())
        request.request_id = rid
        return None

    def process_response(self, request, response):
        rid = getattr(request, 'request_id', None)
        if rid:
            response.headers.setdefault(self.HEADER, rid)
        return response


class AuditLoggingMiddleware(MiddlewareMixin):
    """
    Emit one `audit` log line per API call.

    DRF authenticates inside the view, so the caller is read from the
    request after the response has been produced.
    """

    EXCLUDED_PATHS = [
        '/api/v1/health/',
        '/static/',
    ]

    def should_log(self, path):
        for excluded in self.EXCLUDED_PATHS:
            if path.startswith(excluded):
                return False
        return path.startswith('/api/')

    def process_response(self, request, response):
        if not self.should_log(request.path):
            return response

        user = getattr(request, 'user', None)
        user_id = getattr(user, 'user_id', None)
        tenant_id = getattr(user, 'tenant_id', None)

        audit_logger.info(
            "API_CALL|method=%s|endpoint=%s|status=%s|user_id=%s|tenant_id=%s|ip=%s|request_id=%s",
            request.method,
            request.path,
            response.status_code,
            user_id,
            tenant_id,
            self.get_client_ip(request),
            getattr(request, 'request_id', None),
        )

        if response.status_code >= 400:
            logger.warning(
                "API Error: %s %s - Status: %s - User: %s",
                request.method, request.path, response.status_code, user_id,
            )

        return response

    @staticmethod
    def get_client_ip(request):
        """Extract client IP address from request"""
        x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
        if x_forwarded_for:
            return x_forwarded_for.split(',')[0]
        return request.META.get('REMOTE_ADDR')


class MetricsMiddleware(MiddlewareMixin):
    """Prometheus request metrics for /api/* routes."""

    def process_request(self, request):
        request._metrics_start_ts = timezone.now()
        return None

    def process_response(self, request, response):
        if not getattr(request, 'path', '').startswith('/api/'):
            return response

        start = getattr(request, '_metrics_start_ts', None)
        if start is None:
            return response
        duration = (timezone.now() - start).total_seconds()

        method = getattr(request, 'method', 'GET')
        # Reduce cardinality: use the resolved route when available.
        match = getattr(request, 'resolver_match', None)
        path = match.route if match is not None and match.route else request.path[:120]

        API_REQUEST_COUNT.labels(method=method, path=path, status=str(response.status_code)).inc()
        API_REQUEST_LATENCY.labels(method=method, path=path).observe(duration)

        return response


class SlowQueryLoggingMiddleware(MiddlewareMixin):
    """Log slow DB queries per-request.

    Enable by setting `DB_SLOW_QUERY_MS` (e.g. 200). Lock waits on contract
    rows during concurrent approvals show up here first.
    """

    def __init__(self, get_response=None):
        super().__init__(get_response)
        self.threshold_ms = int(getattr(settings, 'DB_SLOW_QUERY_MS', 0) or 0)
        self._logger = logging.getLogger('clm_gatekeeper.slowdb')

    def __call__(self, request):
        if not self.threshold_ms:
            return self.get_response(request)

        threshold_ms = self.threshold_ms

        def _wrapper(execute, sql, params, many, context):
            started = time.monotonic()
            try:
                return execute(sql, params, many, context)
            finally:
                elapsed_ms = (time.monotonic() - started) * 1000.0
                if elapsed_ms >= threshold_ms:
                    sql_s = (sql or '').strip().replace('\n', ' ')
                    if len(sql_s) > 2000:
                        sql_s = sql_s[:2000] + '…'
                    self._logger.warning(
                        'SLOW_DB_QUERY ms=%.1f method=%s path=%s request_id=%s sql=%s',
                        elapsed_ms,
                        getattr(request, 'method', ''),
                        getattr(request, 'path', ''),
                        getattr(request, 'request_id', None),
                        sql_s,
                    )

        with connection.execute_wrapper(_wrapper):
            return self.get_response(request)
