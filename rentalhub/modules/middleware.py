import logging
import time

from django.utils.deprecation import MiddlewareMixin

logger = logging.getLogger(__name__)

SLOW_REQUEST_SECONDS = 1.0


class ResponseTimeMiddleware(MiddlewareMixin):
    """Middleware to track response times and log performance metrics"""

    def process_request(self, request):
        request.start_time = time.time()
        return None

    def process_response(self, request, response):
        if hasattr(request, 'start_time'):
            duration = time.time() - request.start_time
            response['X-Response-Time'] = f"{duration:.3f}s"

            if duration > SLOW_REQUEST_SECONDS:
                logger.warning(
                    f"Slow Request: {request.method} {request.path} - "
                    f"{duration:.3f}s - Status: {response.status_code}"
                )
            else:
                logger.debug(
                    f"Response Time: {request.method} {request.path} - "
                    f"{duration:.3f}s - Status: {response.status_code}"
                )
        return response


class RequestLoggingMiddleware:
    """Middleware to log request details for monitoring"""
    skip_paths = ('/admin/', '/static/')

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if request.path.startswith(self.skip_paths):
            return self.get_response(request)

        response = self.get_response(request)

        user_str = "Anonymous"
        user = getattr(request, "user", None)
        if user is not None and user.is_authenticated:
            user_str = getattr(user, "email", None) or str(user)

        logger.info(
            f"Request: {request.method} {request.path} - "
            f"IP: {self.get_client_ip(request)} - "
            f"User: {user_str} - Status: {response.status_code}"
        )
        return response

    def get_client_ip(self, request):
        x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
        if x_forwarded_for:
            return x_forwarded_for.split(',')[0]
        return request.META.get('REMOTE_ADDR')
