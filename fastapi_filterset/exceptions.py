"""Error types raised while compiling filters and resolving sort keys."""

from typing import Any, Iterable, List

from fastapi import HTTPException, status


class FilterError(HTTPException):
    """
    Base class for request-level filtering errors.

    These are client errors: FastAPI turns them into a 400 response on its own,
    and callers outside a request can catch them like any other exception.
    """

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

    def __str__(self) -> str:
        return str(self.detail)


class UnknownFilterError(FilterError):
    """A filter name was supplied that has no registered builder."""

    def __init__(self, name: str, available: Iterable[str] = ()):
        self.name = name
        self.available: List[str] = sorted(available)
        super().__init__(
            f"Unknown filter '{name}'. Available filters: {', '.join(self.available)}"
        )


class InvalidSortKeyError(FilterError):
    """A sort key did not match any registered sort prefix."""

    def __init__(self, key: str, available: Iterable[str] = ()):
        self.key = key
        self.available: List[str] = sorted(available)
        super().__init__(
            f"Invalid sort key '{key}'. Available sort fields: {', '.join(self.available)}"
        )


class ValidationError(FilterError):
    """A raw filter value could not be normalized for its filter."""

    def __init__(self, name: str, value: Any, reason: str):
        self.name = name
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid value {value!r} for filter '{name}': {reason}")
