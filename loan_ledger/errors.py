"""
Error Taxonomy Module

Every failure surfaced by the ledger is one of three stable kinds:
validation (client input), not found (unknown loan or customer) and
storage (persistence failure).
"""

from typing import Any, Dict, Optional


class LedgerError(Exception):
    """Base exception for all ledger errors"""

    kind = "ledger_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Error payload returned to callers"""
        return {
            "error": self.kind,
            "message": self.message,
            "field": self.details.get("field"),
        }


class ValidationError(LedgerError):
    """Raised when request input is missing or malformed"""

    kind = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, {"field": field} if field else None)
        self.field = field


class NotFoundError(LedgerError):
    """Raised when a referenced loan or customer does not exist"""

    kind = "not_found"

    def __init__(self, entity: str, entity_id: Optional[str] = None, message: Optional[str] = None):
        if message is None:
            message = f"{entity.capitalize()} not found"
            if entity_id:
                message = f"{entity.capitalize()} '{entity_id}' not found"
        super().__init__(message, {"entity": entity, "entity_id": entity_id})
        self.entity = entity
        self.entity_id = entity_id


class StorageError(LedgerError):
    """Raised when the underlying persistence layer fails"""

    kind = "storage_error"
