"""
Business error taxonomy.

Every failure raised by the service layer is a BillingError carrying a
machine-readable code. Routes never translate codes by hand: the error
handler registered in create_app() renders them with the status attached
to the error class.

NOT FOUND vs ACCESS DENIED:
- SHOP_NOT_FOUND: the shop id does not exist at all
- SHOP_ACCESS_DENIED: the shop exists but the caller's role is insufficient
- INVOICE_NOT_FOUND / INVOICE_ITEM_NOT_FOUND: missing OR outside the caller's
  tenancy; the two causes are reported identically
"""

from __future__ import annotations


class BillingError(Exception):
    """Base class for business failures raised by services."""

    default_code = "INTERNAL_SERVER_ERROR"
    status_code = 400

    def __init__(self, message: str, code: str | None = None, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class NotFoundError(BillingError):
    default_code = "NOT_FOUND"
    status_code = 404


class AccessDeniedError(BillingError):
    default_code = "SHOP_ACCESS_DENIED"
    status_code = 403


class ConflictError(BillingError):
    default_code = "CONFLICT"
    status_code = 409


class ValidationError(BillingError):
    """400-level input problem."""
    default_code = "VALIDATION_ERROR"
    status_code = 400


class StorageError(BillingError):
    """Underlying storage failed during a read."""
    default_code = "FETCH_ERROR"
    status_code = 500


class PdfGenerationError(BillingError):
    default_code = "PDF_GENERATION_ERROR"
    status_code = 500


class AuthenticationError(BillingError):
    default_code = "INVALID_CREDENTIALS"
    status_code = 401
