import json
import logging
import traceback

from django.http.request import RawPostDataException
from django.utils.deprecation import MiddlewareMixin

from .domain_logs import ActivityLog, ErrorLog

logger = logging.getLogger(__name__)

# never persist these request keys in the audit table
_REDACTED_KEYS = {'password', 'refresh', 'access', 'token'}


def _request_user(request):
    user = getattr(request, 'user', None)
    if user is not None and user.is_authenticated:
        return user
    return None


def _request_payload(request):
    try:
        if request.body and request.content_type == 'application/json':
            payload = json.loads(request.body.decode('utf-8'))
        else:
            return None
    except (ValueError, UnicodeDecodeError, RawPostDataException):
        return None
    if isinstance(payload, dict):
        return {k: ('***' if k in _REDACTED_KEYS else v) for k, v in payload.items()}
    return payload


class RequestActivityMiddleware(MiddlewareMixin):
    """Logs POST/PUT/PATCH/DELETE calls against the API into ActivityLog."""

    def process_request(self, request):
        # the body has to be read before DRF consumes the stream
        if request.method in ('POST', 'PUT', 'PATCH', 'DELETE'):
            request._audit_payload = _request_payload(request)

    def process_response(self, request, response):
        if request.method not in ('POST', 'PUT', 'PATCH', 'DELETE'):
            return response
        if not request.path.startswith('/api/'):
            return response
        try:
            match = getattr(request, 'resolver_match', None)
            ActivityLog.objects.create(
                user=_request_user(request),
                view_name=getattr(match, 'url_name', None),
                path=request.path,
                method=request.method,
                payload=getattr(request, '_audit_payload', None),
                status_code=getattr(response, 'status_code', None),
            )
        except Exception:
            # audit failures must not turn a successful response into an error
            logger.exception('Failed to write activity log for %s %s', request.method, request.path)
        return response


class ExceptionLoggingMiddleware(MiddlewareMixin):
    def process_exception(self, request, exception):
        try:
            ErrorLog.objects.create(
                user=_request_user(request),
                path=request.path,
                method=request.method,
                message=str(exception),
                stack=traceback.format_exc(),
            )
        except Exception:
            logger.exception('Failed to write error log for %s %s', request.method, request.path)
        # returning None allows normal exception handling to continue
        return None
