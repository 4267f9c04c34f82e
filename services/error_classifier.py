"""Provider error classification — opaque exception → :class:`ErrorKind`.

Generation providers surface heterogeneous errors (SDK exceptions, HTTP
status codes, gRPC-style status strings).  ``classify`` maps them onto the
small taxonomy the orchestrator's retry policy needs, using an ordered
matcher table: the first matching row wins.
"""

from __future__ import annotations

import asyncio
from typing import Callable

from errors.exceptions import ErrorKind

# Exception type names treated as network-level failures, matched by name so
# the classifier does not import every transport library.
_NETWORK_ERROR_TYPES = frozenset({
    "TimeoutError",
    "TimeoutException",
    "ReadTimeout",
    "ConnectTimeout",
    "WriteTimeout",
    "PoolTimeout",
    "ConnectError",
    "ReadError",
    "RemoteProtocolError",
    "APIConnectionError",
    "APITimeoutError",
    "CancelledError",
})

# (kind, substrings): substring match on the normalized error text.
ERROR_MATCHERS: tuple[tuple[ErrorKind, tuple[str, ...]], ...] = (
    (ErrorKind.QUOTA_EXCEEDED, ("quota", "resource_exhausted")),
    (ErrorKind.RATE_LIMITED, ("429",)),
    (ErrorKind.MODEL_UNAVAILABLE, ("not found", "not_found", "location", "unsupported")),
    (ErrorKind.TRANSIENT_NETWORK, ("timeout", "timed out", "abort")),
)


def error_text(error: BaseException | str) -> str:
    """Normalized (lower-cased) text of an error, status code included."""
    if isinstance(error, str):
        return error.lower()
    parts = [type(error).__name__]
    status = getattr(error, "status_code", None) or getattr(error, "code", None)
    if status is not None:
        parts.append(str(status))
    parts.append(str(error))
    body = getattr(error, "body", None)
    if body:
        parts.append(str(body))
    cause = error.__cause__
    if cause is not None and cause is not error:
        parts.append(str(cause))
    return " ".join(parts).lower()


def _is_network_error(error: BaseException | str) -> bool:
    if isinstance(error, str):
        return False
    if isinstance(error, (asyncio.TimeoutError, TimeoutError, ConnectionError)):
        return True
    names = {type(error).__name__}
    if error.__cause__ is not None:
        names.add(type(error.__cause__).__name__)
    return bool(names & _NETWORK_ERROR_TYPES)


def classify(error: BaseException | str) -> ErrorKind:
    """Map a raw provider error (exception or message) to an :class:`ErrorKind`.

    Quota wording wins over everything else, so a ``429 RESOURCE_EXHAUSTED``
    counts as quota exhaustion rather than plain rate limiting.
    """
    text = error_text(error)
    for kind, needles in ERROR_MATCHERS:
        if any(needle in text for needle in needles):
            return kind
    if _is_network_error(error):
        return ErrorKind.TRANSIENT_NETWORK
    return ErrorKind.UNKNOWN


Classifier = Callable[[BaseException | str], ErrorKind]
