"""Error types and the JSON error decorator used by the catalog endpoints."""

from __future__ import annotations

import json
from functools import wraps
from typing import Any, Callable, ParamSpec, TypeVar, overload

from flask import current_app, g, jsonify, request
from werkzeug.exceptions import HTTPException

from helpers import _coerce_positive_id
from igdb.client import IGDBRequestError
from users.auth import InvalidTokenError

P = ParamSpec("P")
R = TypeVar("R")


class APIError(Exception):
    """An error that maps directly onto an HTTP status and ``{"error": ...}`` body."""

    status_code: int = 500
    message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None, *, status_code: int | None = None) -> None:
        self.message = message or type(self).message
        super().__init__(self.message)
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message}


class BadRequestError(APIError):
    status_code = 400
    message = "Invalid request."


class UnauthorizedError(APIError):
    status_code = 401
    message = "Authentication required."


class ForbiddenError(APIError):
    status_code = 403
    message = "Access denied"


class NotFoundError(APIError):
    status_code = 404
    message = "Resource not found."


class ConflictError(APIError):
    status_code = 409
    message = "Resource already exists."


class UpstreamServiceError(APIError):
    """IGDB or Twitch could not be reached or answered with an error."""

    status_code = 502
    message = "Upstream service unavailable."


def _request_summary(status_code: int) -> str:
    summary = {
        "status_code": status_code,
        "method": request.method,
        "route": request.path,
        "endpoint": request.endpoint,
        "view_args": dict(request.view_args or {}),
        "args": request.args.to_dict(),
    }
    try:
        return json.dumps(summary, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return repr(summary)


def _log_api_error(exc: BaseException, status_code: int) -> None:
    summary = _request_summary(status_code)
    cause = exc.__cause__
    if status_code < 500:
        current_app.logger.warning("API request rejected: %s | %s", exc, summary)
    elif isinstance(exc, UpstreamServiceError):
        current_app.logger.error(
            "Catalog lookup failed upstream: %s (%s) | %s", exc, cause or "no detail", summary
        )
    else:
        current_app.logger.error(
            "Unhandled API error: %s | %s", exc, summary, exc_info=exc
        )


def _error_response(error: APIError, exc: BaseException):
    _log_api_error(exc, error.status_code)
    return jsonify(error.to_dict()), error.status_code


@overload
def handle_api_errors(func: Callable[P, R]) -> Callable[P, R]: ...


@overload
def handle_api_errors(
    *, upstream_message: str | None = None
) -> Callable[[Callable[P, R]], Callable[P, R]]: ...


def handle_api_errors(func=None, *, upstream_message=None):
    """Turn raised errors into JSON error responses.

    Usable bare or as ``@handle_api_errors(upstream_message=...)``. An
    :class:`IGDBRequestError` escaping the view becomes a 502 carrying
    ``upstream_message``; anything unexpected becomes a 500.
    """

    def decorator(view: Callable[P, R]) -> Callable[P, R]:
        @wraps(view)
        def wrapper(*args: P.args, **kwargs: P.kwargs):  # type: ignore[misc]
            try:
                return view(*args, **kwargs)
            except APIError as exc:
                return _error_response(exc, exc)
            except IGDBRequestError as exc:
                error = UpstreamServiceError(upstream_message)
                error.__cause__ = exc
                return _error_response(error, error)
            except HTTPException as exc:
                error = APIError(exc.description or str(exc), status_code=exc.code or 500)
                return _error_response(error, exc)
            except Exception as exc:
                return _error_response(APIError("Internal server error"), exc)

        return wrapper

    if func is not None:
        return decorator(func)
    return decorator


def json_body() -> dict[str, Any]:
    """Return the request's JSON object, or an empty dict when there is no body."""

    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise BadRequestError("Request body must be a JSON object")
    return payload


def require_id(value: Any, missing_message: str, invalid_message: str = "Invalid game ID") -> int:
    """Return ``value`` as a positive id taken from a request body."""

    if value is None or value == "":
        raise BadRequestError(missing_message)
    numeric = _coerce_positive_id(value)
    if numeric is None:
        raise BadRequestError(invalid_message)
    return numeric


def require_auth(view: Callable[P, R]) -> Callable[P, R]:
    """Reject requests without a valid ``Authorization: Bearer`` token.

    The verified ``userId`` and ``email`` land on ``flask.g`` for the view.
    Place it below :func:`handle_api_errors` so rejections render as JSON.
    """

    @wraps(view)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        header = request.headers.get("Authorization", "")
        if not header.startswith("Bearer "):
            raise UnauthorizedError("No token provided")
        try:
            payload = current_app.extensions["auth_tokens"].verify(header[len("Bearer "):])
        except InvalidTokenError as exc:
            raise UnauthorizedError("Invalid or expired token") from exc
        g.user_id = payload["userId"]
        g.user_email = payload["email"]
        return view(*args, **kwargs)

    return wrapper


def current_user_id() -> int:
    return g.user_id


__all__ = [
    "APIError",
    "BadRequestError",
    "ConflictError",
    "ForbiddenError",
    "NotFoundError",
    "UnauthorizedError",
    "UpstreamServiceError",
    "current_user_id",
    "handle_api_errors",
    "json_body",
    "require_auth",
    "require_id",
]
