from urllib.parse import urlparse, parse_qs, urlencode

from rest_framework.pagination import BasePagination
from rest_framework.response import Response


class CustomLimitOffsetPagination(BasePagination):
    """Custom pagination class using limit and offset"""
    default_limit = 10
    limit_query_param = 'limit'
    offset_query_param = 'offset'
    max_limit = 100

    def get_limit(self, request):
        try:
            limit = int(request.query_params.get(
                self.limit_query_param,
                self.default_limit
            ))
            if limit <= 0:
                return self.default_limit
            return min(limit, self.max_limit)
        except (TypeError, ValueError):
            return self.default_limit

    def get_offset(self, request):
        try:
            return max(
                0, int(request.query_params.get(self.offset_query_param, 0)))
        except (TypeError, ValueError):
            return 0

    def paginate_queryset(self, queryset, request, view=None):
        self.limit = self.get_limit(request)
        self.offset = self.get_offset(request)
        self.count = queryset.count()
        self.request = request
        return list(queryset[self.offset:self.offset + self.limit])

    def get_paginated_data(self, data):
        """Pagination envelope placed inside the api_response ``data``."""
        return {
            'count': self.count,
            'next': self.get_next_link(),
            'previous': self.get_previous_link(),
            'results': data,
        }

    def get_paginated_response(self, data):
        return Response(self.get_paginated_data(data))

    def get_next_link(self):
        if self.offset + self.limit >= self.count:
            return None
        url = self.request.build_absolute_uri()
        return self._get_link(url, self.offset + self.limit)

    def get_previous_link(self):
        if self.offset <= 0:
            return None
        url = self.request.build_absolute_uri()
        return self._get_link(url, max(0, self.offset - self.limit))

    def _get_link(self, url, offset):
        parsed = urlparse(url)
        query_params = parse_qs(parsed.query)

        query_params[self.offset_query_param] = [str(offset)]
        query_params[self.limit_query_param] = [str(self.limit)]

        return (
            f"{parsed.scheme}://{parsed.netloc}{parsed.path}"
            f"?{urlencode(query_params, doseq=True)}"
        )
