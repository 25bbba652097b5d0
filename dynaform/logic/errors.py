"""Exception types raised by the form engine.

Validation failures are not exceptions: the validator reports them as
per-field outcomes. Exceptions here cover malformed schemas, unknown
qualified names, session misuse and submission transport problems. Route
handlers translate them into problem+json responses.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence


class DynaformError(Exception):
    """Base class for engine errors."""

    code = "DYNAFORM_ERROR"


class SchemaMalformedError(DynaformError, ValueError):
    """Schema rejected at authoring/save time."""

    code = "SCHEMA_MALFORMED"

    def __init__(self, issues: Sequence[Any]):
        self.issues = list(issues)
        summary = "; ".join(f"{getattr(i, 'path', '')}: {getattr(i, 'message', i)}" for i in self.issues)
        super().__init__(summary or "schema is malformed")


class UnknownFieldKindError(DynaformError, ValueError):
    """A field kind outside the closed set reached a consumer."""

    code = "SCHEMA_UNKNOWN_FIELD_KIND"

    def __init__(self, kind: object):
        self.kind = kind
        super().__init__(f"unknown field kind: {kind!r}")


class QualifiedNameCollisionError(DynaformError, ValueError):
    code = "SCHEMA_QUALIFIED_NAME_COLLISION"

    def __init__(self, qualified_name: str, first: tuple, second: tuple):
        self.qualified_name = qualified_name
        self.first = first
        self.second = second
        super().__init__(f"qualified name {qualified_name!r} produced by both {first!r} and {second!r}")


class UnknownQualifiedNameError(DynaformError, KeyError):
    code = "UNKNOWN_QUALIFIED_NAME"

    def __init__(self, qualified_name: str):
        self.qualified_name = qualified_name
        super().__init__(qualified_name)

    def __str__(self) -> str:
        return f"unknown qualified name: {self.qualified_name}"


class NotSelectableFieldError(DynaformError, ValueError):
    code = "FIELD_NOT_SELECTABLE"


class FieldKindMismatchError(DynaformError, ValueError):
    code = "FIELD_KIND_MISMATCH"


class FormInvalidError(DynaformError):
    """Submission attempted while some effective field fails validation."""

    code = "FORM_INVALID"

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        super().__init__(f"form has {len(self.errors)} invalid field(s)")


class FormInactiveError(DynaformError):
    code = "FORM_INACTIVE"


class FieldNotFoundError(DynaformError, KeyError):
    code = "FIELD_NOT_FOUND"

    def __str__(self) -> str:
        return f"field not found: {self.args[0] if self.args else ''}"


class EditorNotFoundError(DynaformError, KeyError):
    code = "EDITOR_NOT_FOUND"

    def __str__(self) -> str:
        return f"editor not found: {self.args[0] if self.args else ''}"


class FillSessionNotFoundError(DynaformError, KeyError):
    code = "FILL_SESSION_NOT_FOUND"

    def __str__(self) -> str:
        return f"fill session not found: {self.args[0] if self.args else ''}"


class SubmissionInFlightError(DynaformError):
    code = "SUBMISSION_IN_FLIGHT"


class SubmissionTransportError(DynaformError):
    """Submission could not be delivered; the user may retry."""

    code = "SUBMISSION_TRANSPORT_FAILED"
    retryable = True

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class SubmissionRejectedError(DynaformError):
    """The submission service rejected the answers with field-level errors."""

    code = "SUBMISSION_REJECTED"

    def __init__(self, errors: List[Dict[str, Any]], status_code: int = 400):
        self.errors = list(errors)
        self.status_code = status_code
        super().__init__(f"submission rejected with {len(self.errors)} error(s)")


class AdminSessionInvalidError(DynaformError):
    code = "ADMIN_SESSION_INVALID"


class AdminSessionExpiredError(AdminSessionInvalidError):
    code = "ADMIN_SESSION_EXPIRED"


__all__ = [
    "DynaformError",
    "SchemaMalformedError",
    "UnknownFieldKindError",
    "QualifiedNameCollisionError",
    "UnknownQualifiedNameError",
    "NotSelectableFieldError",
    "FieldKindMismatchError",
    "FormInvalidError",
    "FormInactiveError",
    "FieldNotFoundError",
    "EditorNotFoundError",
    "FillSessionNotFoundError",
    "SubmissionInFlightError",
    "SubmissionTransportError",
    "SubmissionRejectedError",
    "AdminSessionInvalidError",
    "AdminSessionExpiredError",
]
