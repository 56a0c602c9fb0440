"""Normalization helpers for user-facing Docker daemon errors."""

from __future__ import annotations

import re

from docker.errors import APIError

_SOCKET_PATTERN = re.compile(
    r"(connection refused|no such file or directory|permission denied)",
    re.IGNORECASE,
)


def describe_docker_error(exc: BaseException) -> str:
    """Return a concise message for a docker-py or transport exception."""
    if isinstance(exc, APIError):
        explanation = exc.explanation
        if isinstance(explanation, bytes):
            explanation = explanation.decode("utf-8", errors="replace")
        raw_message = str(explanation or "").strip() or str(exc).strip()
    else:
        raw_message = str(exc).strip()
    if not raw_message:
        return f"Docker daemon error ({exc.__class__.__name__})."
    return raw_message


def describe_unreachable_daemon(exc: BaseException, *, base_url: str | None = None) -> str:
    """Return a user-friendly message for a daemon connection failure."""
    raw_message = describe_docker_error(exc)
    target = f" at {base_url}" if base_url else ""
    match = _SOCKET_PATTERN.search(raw_message)
    if match is not None:
        return f"Docker daemon is unreachable{target}: {match.group(1).lower()}."
    return f"Docker daemon is unreachable{target}: {raw_message}"
