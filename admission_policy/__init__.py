"""Kure admission policy: evaluates Pod manifests against a fixed security rule catalog."""
from admission_policy.errors import (
    AdmissionPolicyError, InvalidDocumentShape, ManifestLoadError, QuantityError,
)
from admission_policy.models.models import ManifestDocument, Violation, ViolationKind
from admission_policy.services.policy_engine import PolicyEngine, evaluate, list_rules
from admission_policy.services.quantity import compare_quantities, parse_quantity

__version__ = "1.0.0"

__all__ = [
    "AdmissionPolicyError",
    "InvalidDocumentShape",
    "ManifestDocument",
    "ManifestLoadError",
    "PolicyEngine",
    "QuantityError",
    "Violation",
    "ViolationKind",
    "compare_quantities",
    "evaluate",
    "list_rules",
    "parse_quantity",
]
