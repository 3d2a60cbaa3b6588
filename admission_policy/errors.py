from typing import List, Optional


class AdmissionPolicyError(Exception):
    """Base class for all admission policy errors"""


class QuantityError(AdmissionPolicyError, ValueError):
    """A resource quantity string could not be parsed"""

    def __init__(self, quantity, reason: str = "not a valid quantity"):
        self.quantity = quantity
        self.reason = reason
        super().__init__(f"Invalid quantity {quantity!r}: {reason}")


class InvalidDocumentShape(AdmissionPolicyError):
    """The manifest does not have the minimal shape needed for evaluation.

    This means "cannot evaluate", not "found a problem", so it is raised
    instead of being reported as a violation.
    """

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.message = message
        self.errors = errors or []
        super().__init__(message)

    def __str__(self):
        if not self.errors:
            return self.message
        return f"{self.message}: {'; '.join(self.errors)}"


class ManifestLoadError(AdmissionPolicyError):
    """The serialized manifest could not be decoded"""
