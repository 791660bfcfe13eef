"""Error kinds shared by the stores, the lifecycle and the routers.

Each kind maps to one HTTP status so the routers can let them propagate
and the handler installed by :func:`install_error_handlers` renders them.
"""
from __future__ import annotations

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class WordtalesError(Exception):
	status_code = 500
	kind = "error"

	def __init__(self, message: str, *, resource: Optional[str] = None) -> None:
		super().__init__(message)
		self.message = message
		self.resource = resource


class NotFound(WordtalesError):
	status_code = 404
	kind = "not_found"


class PermissionDenied(WordtalesError):
	status_code = 403
	kind = "permission_denied"


class Conflict(WordtalesError):
	status_code = 409
	kind = "conflict"


class ExternalServiceFailure(WordtalesError):
	status_code = 502
	kind = "external_service_failure"


class ValidationFailure(WordtalesError):
	status_code = 400
	kind = "validation_failure"


async def _handle(request: Request, exc: WordtalesError) -> JSONResponse:
	body = {"detail": exc.message, "kind": exc.kind}
	if exc.resource:
		body["resource"] = exc.resource
	return JSONResponse(status_code=exc.status_code, content=body)


def install_error_handlers(app: FastAPI) -> None:
	app.add_exception_handler(WordtalesError, _handle)
