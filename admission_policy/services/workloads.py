import logging
from typing import Any, Dict, Mapping, Optional

from admission_policy.errors import InvalidDocumentShape

logger = logging.getLogger(__name__)

# Workload kinds whose pod template lives at spec.template
TEMPLATE_WORKLOAD_KINDS = ["Deployment", "StatefulSet", "DaemonSet", "ReplicaSet", "Job"]

# Kinds that never carry a pod spec; anything else must look like a workload
NON_POD_KINDS = [
    "Service", "Endpoints", "EndpointSlice", "Ingress", "IngressClass", "NetworkPolicy",
    "ConfigMap", "Secret", "Namespace", "ServiceAccount", "LimitRange", "ResourceQuota",
    "Role", "ClusterRole", "RoleBinding", "ClusterRoleBinding", "PriorityClass",
    "PersistentVolume", "PersistentVolumeClaim", "StorageClass",
    "HorizontalPodAutoscaler", "PodDisruptionBudget", "CustomResourceDefinition",
    "ValidatingWebhookConfiguration", "MutatingWebhookConfiguration",
]


def _mapping(value, path: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise InvalidDocumentShape(f"{path} must be a mapping")
    return value


def extract_pod(document: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    """Return the Pod-shaped view of a manifest, or None if the kind is known to carry no pods.

    Pods are returned unchanged. For workload controllers the pod template is
    lifted into a Pod document: its labels and annotations come from the
    template, its name and namespace from the owning object.
    Any other kind is evaluated as a Pod when it has spec.containers.
    """
    if not isinstance(document, Mapping):
        raise InvalidDocumentShape("Manifest must be a mapping")

    kind = document.get("kind")
    if not kind or not isinstance(kind, str):
        raise InvalidDocumentShape("Manifest is missing 'kind'")

    if kind == "Pod":
        return dict(document)
    if kind in NON_POD_KINDS:
        logger.debug(f"Kind {kind} is not subject to pod policy")
        return None

    spec = _mapping(document.get("spec"), "spec")
    if kind in TEMPLATE_WORKLOAD_KINDS:
        path = "spec.template"
        template = spec.get("template")
    elif kind == "CronJob":
        path = "spec.jobTemplate.spec.template"
        job_template = _mapping(spec.get("jobTemplate"), "spec.jobTemplate")
        template = _mapping(job_template.get("spec"), "spec.jobTemplate.spec").get("template")
    elif "containers" in spec:
        logger.debug(f"Evaluating unrecognised kind {kind} as a Pod")
        return dict(document)
    else:
        raise InvalidDocumentShape(f"Kind {kind} is not a known workload and has no spec.containers")

    if not isinstance(template, Mapping):
        raise InvalidDocumentShape(f"{kind} is missing {path}")

    metadata = _mapping(document.get("metadata"), "metadata")
    template_metadata = _mapping(template.get("metadata"), f"{path}.metadata")
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {
            "name": metadata.get("name"),
            "namespace": metadata.get("namespace") or template_metadata.get("namespace"),
            "labels": template_metadata.get("labels") or {},
            "annotations": template_metadata.get("annotations") or {},
        },
        "spec": template.get("spec") or {},
    }
