"""Custom exception classes and error handling."""

from typing import Any

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(
            status_code=status_code,
            detail={
                "success": False,
                "error": {
                    "code": code,
                    "message": message,
                    "details": details or {},
                },
            },
        )


class AuthenticationError(AppException):
    """Authentication failed."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            code="AUTH_FAILED",
            message=message,
        )


class ValidationError(AppException):
    """Data validation failed."""

    def __init__(
        self,
        message: str = "Validation error",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            code="VALIDATION_ERROR",
            message=message,
            details=details,
        )


class UploadError(AppException):
    """File upload rejected at the boundary (name, extension, size)."""

    def __init__(
        self,
        message: str = "Upload failed",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            code="UPLOAD_FAILED",
            message=message,
            details=details,
        )


class ParseError(AppException):
    """Uploaded file is unreadable or structurally empty."""

    def __init__(
        self,
        message: str = "Could not read the uploaded file",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            code="PARSE_ERROR",
            message=message,
            details=details,
        )


class ClassificationAmbiguousError(AppException):
    """No record kind matched the uploaded columns; a manual kind is needed."""

    def __init__(self, rationale: str, columns: list[str]):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            code="CLASSIFICATION_AMBIGUOUS",
            message="Could not detect the data type of the file. Choose the record kind and retry.",
            details={"rationale": rationale, "columns": columns},
        )


class PreconditionError(AppException):
    """A reference table required by the import is empty for the owner."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            code="PRECONDITION_FAILED",
            message=message,
            details=details,
        )


class ImportFailedError(AppException):
    """No row survived validation and resolution."""

    def __init__(
        self,
        message: str,
        errors: list[dict[str, Any]] | None = None,
    ):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            code="IMPORT_FAILED",
            message=message,
            details={"errors": errors or []},
        )


class NotFoundError(AppException):
    """Resource not found."""

    def __init__(
        self,
        resource: str = "Resource",
        identifier: str | None = None,
    ):
        details = {}
        if identifier:
            details["identifier"] = identifier
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            code="NOT_FOUND",
            message=f"{resource} not found",
            details=details,
        )


# Row-level errors never leave the importer: they are collected per row
# and reported together in the import outcome.


class RowError(Exception):
    """Base class for errors that exclude a single row from an import."""

    error_type = "ROW_ERROR"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class RowValidationError(RowError):
    """A required field of the row is blank."""

    error_type = "VALIDATION_ERROR"


class RowResolutionError(RowError):
    """A natural-key reference of the row does not resolve."""

    error_type = "RESOLUTION_ERROR"


class RowPersistenceError(RowError):
    """The store rejected the row on insert or update."""

    error_type = "PERSISTENCE_ERROR"
