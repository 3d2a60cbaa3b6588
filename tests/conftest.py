import copy

import pytest


COMPLIANT_POD = {
    "apiVersion": "v1",
    "kind": "Pod",
    "metadata": {
        "name": "web",
        "namespace": "staging",
        "labels": {"app": "web", "compliance": "pci-dss", "environment": "staging"},
        "annotations": {"kubernetes.io/psp": "restricted", "prometheus.io/scrape": "true"},
    },
    "spec": {
        "automountServiceAccountToken": False,
        "terminationGracePeriodSeconds": 30,
        "securityContext": {
            "runAsNonRoot": True,
            "seccompProfile": {"type": "RuntimeDefault"},
        },
        "volumes": [{"name": "cache", "emptyDir": {"sizeLimit": "512Mi"}}],
        "containers": [
            {
                "name": "app",
                "image": "registry.example.com/web:1.4.2",
                "imagePullPolicy": "IfNotPresent",
                "securityContext": {
                    "runAsNonRoot": True,
                    "runAsUser": 1000,
                    "allowPrivilegeEscalation": False,
                    "readOnlyRootFilesystem": True,
                    "capabilities": {"drop": ["ALL"]},
                },
                "resources": {
                    "limits": {"memory": "512Mi", "cpu": "500m"},
                    "requests": {"memory": "256Mi", "cpu": "250m"},
                },
                "ports": [{"name": "http", "containerPort": 8080, "protocol": "TCP"}],
                "env": [
                    {"name": "LOG_LEVEL", "value": "info"},
                    {"name": "SECRET_KEY", "valueFrom": {"secretKeyRef": {"name": "web", "key": "secret-key"}}},
                ],
                "livenessProbe": {"httpGet": {"path": "/healthz", "port": 8080}, "failureThreshold": 3},
                "readinessProbe": {"httpGet": {"path": "/ready", "port": 8080}, "failureThreshold": 3},
                "startupProbe": {"httpGet": {"path": "/healthz", "port": 8080}, "failureThreshold": 30},
                "lifecycle": {"preStop": {"exec": {"command": ["sleep", "5"]}}},
                "volumeMounts": [{"name": "cache", "mountPath": "/tmp"}],
            }
        ],
    },
}

BARE_POD = {
    "apiVersion": "v1",
    "kind": "Pod",
    "metadata": {"name": "bare", "namespace": "default"},
    "spec": {"containers": [{"name": "app", "image": "nginx:1.25"}]},
}


@pytest.fixture
def compliant_pod():
    """Pod that passes every rule in the catalog"""
    return copy.deepcopy(COMPLIANT_POD)


@pytest.fixture
def bare_pod():
    """Pod with a single container and nothing else configured"""
    return copy.deepcopy(BARE_POD)


@pytest.fixture
def deployment(compliant_pod):
    """Deployment whose pod template is the compliant pod"""
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"name": "web", "namespace": "staging"},
        "spec": {
            "replicas": 2,
            "template": {
                "metadata": compliant_pod["metadata"],
                "spec": compliant_pod["spec"],
            },
        },
    }
