"""
Query-string helpers.
"""
from typing import Iterable


def query_array(values: Iterable[str]) -> str:
    """Render values the way the API expects array query parameters: ["a","b"]."""
    return '[' + ','.join(f'"{value}"' for value in values) + ']'


def drop_empty(fields: dict) -> dict:
    """Return a copy of fields without None, empty strings or empty collections."""
    return {
        key: value for key, value in fields.items()
        if value is not None and value != '' and value != [] and value != {}
    }
