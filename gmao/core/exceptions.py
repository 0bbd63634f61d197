# gmao/core/exceptions.py

"""
Typed errors raised by the services.

Every error carries a stable `code`, a human readable `message`, structured
`details` and the HTTP status it maps to. `gmao.main` registers one exception
handler that renders them as JSON.
"""

from typing import Any, Dict, List, Optional


class GmaoError(Exception):
    """Base error of the application."""

    status_code: int = 400
    code: str = "GMAO_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "detail": self.message,
            "code": self.code,
            "details": self.details,
        }


class NotFoundError(GmaoError):
    """Referenced entity does not exist."""

    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(
            message=f"{entity} with id '{entity_id}' not found",
            details={"entity": entity, "id": entity_id},
        )
        self.entity = entity
        self.entity_id = entity_id


class InvalidInputError(GmaoError):
    status_code = 400
    code = "INVALID_INPUT"

    def __init__(self, field: str, reason: str):
        super().__init__(
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "reason": reason},
        )
        self.field = field
        self.reason = reason


class InvalidTransitionError(GmaoError):
    """
    Requested status change is not an edge of the work order state machine.
    `allowed` lists the statuses reachable from `current`.
    """

    status_code = 400
    code = "INVALID_TRANSITION"

    def __init__(self, current: str, requested: str, allowed: List[str]):
        super().__init__(
            message=f"Invalid transition from '{current}' to '{requested}'",
            details={
                "current_status": current,
                "requested_status": requested,
                "allowed_transitions": list(allowed),
            },
        )
        self.current = current
        self.requested = requested
        self.allowed = list(allowed)


class InsufficientStockError(GmaoError):
    status_code = 400
    code = "INSUFFICIENT_STOCK"

    def __init__(self, available: int, requested: int):
        super().__init__(
            message=f"Insufficient stock. Required: {requested}, Available: {available}",
            details={"available": available, "requested": requested},
        )
        self.available = available
        self.requested = requested


class UnauthorizedError(GmaoError):
    status_code = 401
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(message=message)


class ForbiddenError(GmaoError):
    status_code = 403
    code = "FORBIDDEN"

    def __init__(self, required_role: str):
        super().__init__(
            message=f"Not enough permissions. {required_role} role required.",
            details={"required_role": required_role},
        )
        self.required_role = required_role


class ConflictError(GmaoError):
    status_code = 409
    code = "CONFLICT"

    def __init__(self, reason: str):
        super().__init__(message=reason, details={"reason": reason})
        self.reason = reason


class StorageError(GmaoError):
    """The file storage collaborator could not store any of the given files."""

    status_code = 502
    code = "STORAGE_ERROR"

    def __init__(self, message: str = "Failed to upload images"):
        super().__init__(message=message)
