from typing import Any, Dict, List

from fastapi import APIRouter, Body
import logging

from admission_policy.errors import InvalidDocumentShape
from admission_policy.models.models import AdmissionReview, EvaluationResponse, RuleInfo
from admission_policy.services.policy_engine import PolicyEngine

logger = logging.getLogger(__name__)

ADMISSION_API_VERSION = "admission.k8s.io/v1"


def _with_request_namespace(obj: Dict[str, Any], namespace: str) -> Dict[str, Any]:
    """Copy obj, filling metadata.namespace from the admission request when unset"""
    metadata = dict(obj.get("metadata") or {})
    if not metadata.get("namespace") and namespace:
        metadata["namespace"] = namespace
    return {**obj, "metadata": metadata}


def _admission_response(uid: str, allowed: bool, code: int = 200, message: str = "",
                        warnings: List[str] = None) -> Dict[str, Any]:
    response: Dict[str, Any] = {"uid": uid, "allowed": allowed}
    if not allowed:
        response["status"] = {"code": code, "message": message}
    if warnings:
        response["warnings"] = warnings
    return {
        "apiVersion": ADMISSION_API_VERSION,
        "kind": "AdmissionReview",
        "response": response,
    }


def create_api_router(engine: PolicyEngine, mode: str = "enforce") -> APIRouter:
    """Manifest evaluation and the validating admission webhook"""
    router = APIRouter()

    @router.get("/rules", response_model=List[RuleInfo])
    async def get_rules():
        """List the active rule catalog in evaluation order"""
        return engine.list_rules()

    @router.post("/evaluate", response_model=EvaluationResponse)
    async def evaluate_manifest(manifest: Dict[str, Any] = Body(...)):
        """Evaluate a decoded manifest and return every violation"""
        logger.info(f"Evaluating manifest {manifest.get('kind')}/{(manifest.get('metadata') or {}).get('name')}")
        violations = engine.evaluate(manifest)
        return EvaluationResponse(compliant=not violations, violations=violations)

    @router.post("/validate")
    async def validate_admission(review: AdmissionReview):
        """ValidatingAdmissionWebhook endpoint"""
        request = review.request
        logger.info(f"Admission review {request.uid}: {request.operation} in namespace {request.namespace}")

        if not request.object:
            return _admission_response(request.uid, False, 400, "AdmissionReview request has no object")

        try:
            violations = engine.evaluate(_with_request_namespace(request.object, request.namespace))
        except InvalidDocumentShape as e:
            logger.warning(f"Admission review {request.uid}: cannot evaluate manifest: {e}")
            return _admission_response(request.uid, False, 400, f"Cannot evaluate manifest: {e}")

        if not violations:
            return _admission_response(request.uid, True)

        messages = [v.message for v in violations]
        if mode == "audit":
            logger.info(f"Admission review {request.uid}: admitted with {len(messages)} violations (audit mode)")
            return _admission_response(request.uid, True, warnings=messages)

        logger.info(f"Admission review {request.uid}: denied with {len(messages)} violations")
        return _admission_response(request.uid, False, 403, "; ".join(messages))

    return router
