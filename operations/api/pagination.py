from __future__ import annotations

import math

from rest_framework.pagination import PageNumberPagination


class PageLimitPagination(PageNumberPagination):
    """``?page=&limit=`` pagination that reports its state beside the results."""

    page_query_param = 'page'
    page_size_query_param = 'limit'
    max_page_size = 100

    def get_pagination_meta(self) -> dict:
        total = self.page.paginator.count
        limit = self.page.paginator.per_page
        page = self.page.number
        return {
            'total': total,
            'page': page,
            'limit': limit,
            'totalPages': math.ceil(total / limit) if limit else 0,
            'hasNextPage': self.page.has_next(),
            'hasPreviousPage': self.page.has_previous(),
        }

    def get_paginated_data(self, data, key: str = 'results') -> dict:
        return {key: data, 'pagination': self.get_pagination_meta()}

    def get_paginated_response_schema(self, schema):
        return {
            'type': 'object',
            'properties': {
                'results': schema,
                'pagination': {
                    'type': 'object',
                    'properties': {
                        'total': {'type': 'integer'},
                        'page': {'type': 'integer'},
                        'limit': {'type': 'integer'},
                        'totalPages': {'type': 'integer'},
                        'hasNextPage': {'type': 'boolean'},
                        'hasPreviousPage': {'type': 'boolean'},
                    },
                },
            },
        }
