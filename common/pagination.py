"""
Pagination utilities for the project.

Defines the default page number paginator used across DRF endpoints and
a cursor paginator for mailbox folders, where offsets drift as new
messages arrive.
"""
from rest_framework.pagination import CursorPagination, PageNumberPagination


class DefaultPagination(PageNumberPagination):
    """A simple page number paginator with a default page size."""
    page_size = 20
    page_size_query_param = "page_size"
    max_page_size = 100


class MessageCursorPagination(CursorPagination):
    """Stable newest-first paging over a user's mailbox."""
    page_size = 20
    page_size_query_param = "page_size"
    max_page_size = 100
    ordering = ("-created_at", "-id")
