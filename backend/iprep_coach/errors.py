from __future__ import annotations
from typing import Any, Optional

from fastapi import HTTPException


class AppError(Exception):
	"""Base error carrying the HTTP status a router should answer with."""

	status_code = 500
	code = "INTERNAL_ERROR"

	def __init__(self, message: str, *, details: Any = None) -> None:
		super().__init__(message)
		self.message = message
		self.details = details


class TranscriptValidationError(AppError):
	"""Caller error: the transcript cannot be scored. Never retried."""

	status_code = 400
	code = "VALIDATION_ERROR"


class NotFoundError(AppError):
	status_code = 404
	code = "NOT_FOUND"

	def __init__(self, resource: str, identifier: Optional[str] = None) -> None:
		message = f"{resource} with ID {identifier} not found" if identifier else f"{resource} not found"
		super().__init__(message)


# Failure categories surfaced in degraded results
FAILURE_TIMEOUT = "timeout"
FAILURE_NETWORK = "network"
FAILURE_OTHER = "other"


class ScoringAttemptError(AppError):
	"""One failed round trip to the scoring service (timeout, network, parse or schema)."""

	status_code = 502
	code = "EXTERNAL_SERVICE_ERROR"

	def __init__(self, category: str, message: str, *, error_name: Optional[str] = None) -> None:
		super().__init__(message)
		self.category = category
		self.error_name = error_name or type(self).__name__


class StorageSchemaError(AppError):
	"""The persistence layer cannot hold a field (e.g. a column is missing)."""

	code = "STORAGE_SCHEMA_ERROR"

	def __init__(self, field: str, message: Optional[str] = None) -> None:
		super().__init__(message or f"storage has no column for {field}")
		self.field = field


def http_error(err: AppError) -> HTTPException:
	detail = {"error": err.message, "code": err.code}
	if err.details is not None:
		detail["details"] = err.details
	return HTTPException(status_code=err.status_code, detail=detail)
