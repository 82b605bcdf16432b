"""Credential redaction for request logging."""

from collections.abc import Mapping


# Compared lowercase
SENSITIVE_HEADERS = frozenset({"authorization", "proxy-authorization", "cookie", "set-cookie"})

REDACTED_VALUE = "[REDACTED]"


def redact_header_value(name: str, value: str) -> str:
    """Hide the credential in one header value.

    The auth scheme of ``Authorization`` style headers is kept, so logs
    still show whether a request was authenticated.

    Args:
        name: Header name, any case.
        value: Header value.

    Returns:
        The value safe to log.
    """
    if name.lower() not in SENSITIVE_HEADERS:
        return value
    scheme, sep, _credential = value.partition(" ")
    if name.lower().endswith("authorization") and sep:
        return f"{scheme} {REDACTED_VALUE}"
    return REDACTED_VALUE


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Get a copy of ``headers`` that is safe to log."""
    return {name: redact_header_value(name, value) for name, value in headers.items()}
