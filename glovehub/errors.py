from __future__ import annotations

from typing import Any, Dict, List, Optional

from glovehub.localization import translate


class PipelineError(Exception):
    """
    Base for all expected, recoverable pipeline failures.

    - code: stable machine code (also the localization key)
    - message: user-facing text (Indonesian by default)
    - meta: extra context for logging / API payloads
    """

    http_status: int = 400

    def __init__(self, code: str, message: Optional[str] = None, meta: Optional[Dict[str, Any]] = None):
        self.code = str(code)
        self.meta = meta or {}
        self.message = message or translate(self.code, **self.meta)
        super().__init__(f"{self.code}: {self.message}")

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "code": self.code}


class ValidationError(PipelineError):
    """Preconditions failed before any mutation. Carries every violated rule."""

    http_status = 400

    def __init__(
        self,
        errors: List[str],
        code: str = "VALIDATION_ERROR",
        message: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
    ):
        self.errors = list(errors)
        super().__init__(code, message or "; ".join(self.errors), meta)

    def to_dict(self) -> Dict[str, Any]:
        out = super().to_dict()
        out["errors"] = list(self.errors)
        return out


class NotFoundError(PipelineError):
    http_status = 404


class InvalidTransitionError(PipelineError):
    http_status = 409

    def __init__(
        self,
        from_status: Any,
        to_status: Any,
        code: str = "INVALID_TRANSITION",
        message: Optional[str] = None,
    ):
        self.from_status = str(getattr(from_status, "value", from_status))
        self.to_status = str(getattr(to_status, "value", to_status))
        super().__init__(
            code,
            message,
            {"from_status": self.from_status, "to_status": self.to_status},
        )


class ConversionError(InvalidTransitionError):
    """Quotation cannot be (or was already) converted into an order."""


class ConflictError(PipelineError):
    """
    Uniqueness violated at commit time.
    retryable=True for document number collisions, False for duplicates
    such as a second tax invoice for one invoice.
    """

    http_status = 409

    def __init__(
        self,
        code: str,
        message: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
        *,
        retryable: bool = False,
    ):
        self.retryable = retryable
        super().__init__(code, message, meta)
