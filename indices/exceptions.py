from __future__ import annotations

from typing import Any

MAX_ERROR_SNIPPET_CHARS = 1600


class ImageryProviderError(RuntimeError):
    """Signals a failed or unusable response from the imagery provider."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        snippet: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.snippet = snippet
        if status_code is not None:
            message = f"{message} status={status_code}"
        if snippet:
            message = f"{message} body={snippet}"
        super().__init__(message)


def serialize_error(exc: BaseException) -> dict[str, Any]:
    """Flatten an exception into the JSON stored on a failed analysis."""

    return {
        "type": type(exc).__name__,
        "message": str(exc),
        "status_code": getattr(exc, "status_code", None),
        "body": getattr(exc, "snippet", None),
    }
