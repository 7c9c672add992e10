"""Shared utility functions for the claims rules backend."""

from .date_parser import parse_flexible_date, to_naive_utc
from .sanitization import file_extension, sanitize_filename

__all__ = ["file_extension", "parse_flexible_date", "sanitize_filename", "to_naive_utc"]
