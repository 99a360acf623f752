"""
Utility functions for the application.
"""
from typing import Any, Dict, Iterable, List, TypeVar

T = TypeVar("T")


def format_error(message: str, code: str, **fields: Any) -> Dict[str, Any]:
    """Format error response body."""
    response = {"error": message, "code": code}
    for key, value in fields.items():
        if value is not None:
            response[key] = value
    return response


def unique_in_order(items: Iterable[T]) -> List[T]:
    """Drop repeated items, keeping the first occurrence of each."""
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result
