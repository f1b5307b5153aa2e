"""
shared/utils/errors.py
Error taxonomy shared by every service, plus the mapping from
atomic-procedure failures to stable, user-safe API errors.
"""

import logging
from typing import Optional, Type

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base for errors rendered as {"error": message} at the API boundary."""
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthorized(AppError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class Forbidden(AppError):
    status_code = 403

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class NotFound(AppError):
    status_code = 404

    def __init__(self, message: str = "Not found"):
        super().__init__(message)


class InvalidTransition(AppError):
    status_code = 409


class UnexpectedError(AppError):
    status_code = 500

    def __init__(self, message: str = "Something went wrong"):
        super().__init__(message)


class ProcedureError(Exception):
    """
    Raised inside an atomic procedure. The message carries one of the
    markers `unauthorized`, `forbidden`, `not found` or `cannot ...`
    which callers classify with classify_procedure_error().
    """


# Checked in order; "not authorized" must win over the generic "authorized" checks
_MARKERS: list[tuple[tuple[str, ...], Type[AppError]]] = [
    (("unauthorized", "not authenticated"), Unauthorized),
    (("forbidden", "not authorized"), Forbidden),
    (("not found",), NotFound),
    (("cannot accept", "cannot approve", "cannot reject"), InvalidTransition),
]


def classify_procedure_error(
    exc: Exception,
    fallback: str,
    messages: Optional[dict[Type[AppError], str]] = None,
) -> AppError:
    """
    Map a procedure failure to the error taxonomy by substring matching.

    `messages` overrides the user-facing text per category. Without an
    override the procedure's own message is used, capitalised. Anything
    that matches no marker is logged and reported as UnexpectedError(fallback)
    so raw database text never reaches the caller.
    """
    raw = str(exc)
    lowered = raw.lower()
    messages = messages or {}

    for markers, error_cls in _MARKERS:
        if any(marker in lowered for marker in markers):
            text_ = messages.get(error_cls) or (raw[:1].upper() + raw[1:])
            return error_cls(text_)

    logger.error(f"Unclassified procedure error: {raw}")
    return UnexpectedError(fallback)
