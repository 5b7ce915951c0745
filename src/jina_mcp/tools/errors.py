from __future__ import annotations

from typing import Any


class ToolRequestError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class JinaApiError(ToolRequestError):
    """Upstream failure with a classified status/code/message triple."""

    def __init__(self, status: int, code: str, message: str, details: Any = None) -> None:
        super().__init__(message, status_code=status)
        self.status = status
        self.code = code
        self.message = message
        self.details = details

    def __repr__(self) -> str:
        return f"JinaApiError(status={self.status}, code={self.code!r}, message={self.message!r})"


class ToolOperationError(RuntimeError):
    pass


class ResponseShapeError(ToolOperationError):
    pass


_STATUS_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    402: "PAYMENT_REQUIRED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    429: "RATE_LIMIT_EXCEEDED",
    500: "INTERNAL_SERVER_ERROR",
    502: "BAD_GATEWAY",
    503: "SERVICE_UNAVAILABLE",
}


def classify_status(status: int, details: Any = None) -> tuple[str, str]:
    code = _STATUS_CODES.get(status, f"HTTP_{status}")
    if status == 401:
        return code, "Unauthorized: Invalid or missing API key. Check your JINA_API_KEY."
    if status == 402:
        return code, "Payment Required: API quota exceeded. Check your Jina AI account usage."
    if status == 429:
        retry_after = details.get("retry_after") if isinstance(details, dict) else None
        return code, f"Rate Limited: Too many requests. Retry after {retry_after or 'unknown'}s"
    if status == 500:
        return code, "Server Error: Jina service internal error."
    if status == 503:
        return code, "Service Unavailable: Jina service is temporarily down."
    upstream = details.get("message") if isinstance(details, dict) else None
    return code, f"HTTP {status}: {upstream or 'Unknown error'}"


def describe_error(exc: BaseException) -> str:
    """Render an exception as the text of an error response."""
    if not isinstance(exc, JinaApiError):
        return f"Error: {exc}"
    status = exc.status
    if status == 401:
        return (
            "Authentication Error: invalid or missing API key.\n\n"
            f"Error: {exc.message}\n\n"
            "→ Export JINA_API_KEY or set api_key in the jina-mcp config file."
        )
    if status == 402:
        return (
            "Quota Error: API quota exceeded.\n\n"
            f"{exc.message}\n\n"
            "→ Check your Jina AI account usage at https://jina.ai/api"
        )
    if status == 408:
        return (
            "Request Timeout: the page is taking too long to respond.\n\n"
            f"{exc.message}\n\n"
            "→ The site may be JavaScript-heavy or overloaded. Try again later, "
            "raise 'timeout', or use a different URL."
        )
    if status == 429:
        return f"Rate Limit: too many requests.\n\n{exc.message}\n\n→ Limit: 500 RPM for API key holders."
    if status in (500, 502, 503):
        return (
            "Server Error: Jina service temporarily unavailable.\n\n"
            f"Status: {status}\n"
            f"{exc.message}"
        )
    if status == 0 and exc.code == "NETWORK_ERROR":
        return (
            "Network Error: unable to reach the server.\n\n"
            f"{exc.message}\n\n"
            "→ Check your internet connection or try again later."
        )
    return f"API Error:\nStatus: {status}\nCode: {exc.code}\n{exc.message}"
