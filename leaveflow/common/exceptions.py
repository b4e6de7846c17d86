"""Domain exceptions and their RFC 7807 ``application/problem+json`` rendering.

Services raise these; routers never catch them. ``register_exception_handlers``
turns every one of them, plus FastAPI body validation failures and bare
Starlette HTTP errors, into the same problem-detail shape:

    {"type": ".../errors/<slug>", "title": ..., "status": ...,
     "detail": ..., "instance": "<request path>", "errors": {...}?}
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

BASE_ERROR_URI = "https://leaveflow.dev/errors"
PROBLEM_MEDIA_TYPE = "application/problem+json"


# ── Exception hierarchy ─────────────────────────────────────────────

class AppException(Exception):
    """Base for every error a service may raise."""

    status_code: int = 500
    error_type: str = "internal-error"
    title: str = "Internal Error"

    def __init__(
        self,
        detail: str,
        errors: Optional[dict[str, list[str]]] = None,
    ) -> None:
        self.detail = detail
        self.errors = errors
        super().__init__(detail)

    def to_problem(self, instance: str) -> dict[str, Any]:
        return _problem(
            self.error_type, self.title, self.status_code, self.detail, instance,
            errors=self.errors,
        )


class UnauthorizedException(AppException):
    """401: missing, malformed, expired or unknown bearer identity."""

    status_code = 401
    error_type = "unauthorized"
    title = "Unauthorized"


class ForbiddenException(AppException):
    """403: wrong role, wrong tenant, or not the owner."""

    status_code = 403
    error_type = "forbidden"
    title = "Forbidden"

    def __init__(
        self,
        detail: str = "You do not have permission to perform this action.",
    ) -> None:
        super().__init__(detail)


class NotFoundException(AppException):
    status_code = 404
    error_type = "not-found"

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        self.title = f"{entity_type} Not Found"
        super().__init__(f"{entity_type} with id '{entity_id}' does not exist.")


class ConflictError(AppException):
    """409: a unique value is already taken."""

    status_code = 409
    error_type = "conflict"
    title = "Conflict"

    def __init__(self, field: str, value: Any) -> None:
        super().__init__(
            f"An entry with {field}='{value}' already exists.",
            errors={field: [f"'{value}' is already in use."]},
        )


class AlreadyReviewedException(AppException):
    """409: a reviewer decision already closed this leave request.

    Raised both when the request is visibly non-pending and when a concurrent
    decision wins the status compare-and-swap. The caller may refresh and
    retry.
    """

    status_code = 409
    error_type = "already-reviewed"
    title = "Already Reviewed"

    def __init__(self, request_id: Any, status: Optional[str] = None) -> None:
        if status:
            detail = f"Leave request '{request_id}' is already {status}."
        else:
            detail = f"Leave request '{request_id}' has already been reviewed."
        super().__init__(detail)


class ValidationException(AppException):
    """422: business-rule validation, keyed by field name."""

    status_code = 422
    error_type = "validation-error"
    title = "Validation Error"

    def __init__(self, errors: dict[str, list[str]]) -> None:
        super().__init__("One or more fields failed validation.", errors=errors)


# ── Problem-detail rendering ────────────────────────────────────────

def _problem(
    error_type: str,
    title: str,
    status: int,
    detail: str,
    instance: str,
    *,
    errors: Optional[dict[str, list[str]]] = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "type": f"{BASE_ERROR_URI}/{error_type}",
        "title": title,
        "status": status,
        "detail": detail,
        "instance": instance,
    }
    if errors:
        body["errors"] = errors
    return body


def _respond(status: int, body: dict[str, Any]) -> JSONResponse:
    return JSONResponse(status_code=status, content=body, media_type=PROBLEM_MEDIA_TYPE)


def _field_name(loc: tuple[Any, ...]) -> str:
    # ("body", "days") -> "days"; ("query", "page") -> "page"
    if len(loc) > 1:
        return ".".join(str(part) for part in loc[1:])
    return str(loc[0]) if loc else "unknown"


async def _handle_app_exception(request: Request, exc: AppException) -> JSONResponse:
    return _respond(exc.status_code, exc.to_problem(request.url.path))


async def _handle_request_validation(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    errors: dict[str, list[str]] = {}
    for err in exc.errors():
        errors.setdefault(_field_name(tuple(err.get("loc", ()))), []).append(
            err.get("msg", "Invalid value")
        )
    return _respond(
        422,
        _problem(
            "validation-error", "Validation Error", 422,
            "Request validation failed.", request.url.path,
            errors=errors,
        ),
    )


async def _handle_http_exception(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    title = "Not Found" if exc.status_code == 404 else "HTTP Error"
    return _respond(
        exc.status_code,
        _problem("http-error", title, exc.status_code, str(exc.detail), request.url.path),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the problem-detail handlers to *app* (called from ``create_app``)."""
    app.add_exception_handler(AppException, _handle_app_exception)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_request_validation)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)  # type: ignore[arg-type]
