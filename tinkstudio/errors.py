"""Domain errors raised by the services and mapped to HTTP responses in main.py"""

from typing import Any, Optional


class StudioError(Exception):
    """Base class for errors the API reports to the client"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message}


class ValidationFailed(StudioError):
    status_code = 400

    def __init__(self, message: str = "Dati non validi", details: Optional[list[str]] = None):
        super().__init__(message)
        self.details = details or []

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, "details": self.details}


class InvalidState(StudioError):
    """The entity exists but its current status forbids the operation"""

    status_code = 400

    def __init__(self, message: str, current_status: Optional[str] = None):
        super().__init__(message)
        self.current_status = current_status

    def to_dict(self) -> dict[str, Any]:
        body = {"error": self.message}
        if self.current_status is not None:
            body["current_status"] = self.current_status
        return body


class NotFound(StudioError):
    status_code = 404


class SchedulingConflict(StudioError):
    status_code = 409

    def __init__(self, conflicts: list[dict], message: str = "Conflitto con appuntamenti esistenti"):
        super().__init__(message)
        self.conflicts = conflicts

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, "conflicts": self.conflicts}


class TokenExpired(StudioError):
    status_code = 410


class CodeGenerationExhausted(StudioError):
    """The code generator ran out of attempts; not a client error"""

    status_code = 500

    def __init__(self, attempts: int):
        super().__init__(f"Unable to generate a unique gift card code after {attempts} attempts")
        self.attempts = attempts

    def to_dict(self) -> dict[str, Any]:
        return {"error": "Errore interno del server"}
