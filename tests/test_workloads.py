import pytest

from admission_policy.errors import InvalidDocumentShape
from admission_policy.services.workloads import extract_pod


def test_pod_is_returned_unchanged(compliant_pod):
    assert extract_pod(compliant_pod) == compliant_pod


def test_deployment_template_becomes_pod(deployment):
    pod = extract_pod(deployment)

    assert pod["kind"] == "Pod"
    assert pod["metadata"]["name"] == "web"
    assert pod["metadata"]["namespace"] == "staging"
    assert pod["metadata"]["labels"]["app"] == "web"
    assert pod["spec"] is deployment["spec"]["template"]["spec"]


@pytest.mark.parametrize("kind", ["StatefulSet", "DaemonSet", "ReplicaSet", "Job"])
def test_template_workload_kinds(deployment, kind):
    deployment["kind"] = kind

    pod = extract_pod(deployment)

    assert pod["spec"]["containers"][0]["name"] == "app"


def test_cronjob_job_template(compliant_pod):
    cronjob = {
        "apiVersion": "batch/v1",
        "kind": "CronJob",
        "metadata": {"name": "nightly", "namespace": "production"},
        "spec": {
            "schedule": "0 2 * * *",
            "jobTemplate": {"spec": {"template": {
                "metadata": {"annotations": {"prometheus.io/scrape": "false"}},
                "spec": compliant_pod["spec"],
            }}},
        },
    }

    pod = extract_pod(cronjob)

    assert pod["metadata"]["namespace"] == "production"
    assert pod["metadata"]["annotations"] == {"prometheus.io/scrape": "false"}
    assert pod["metadata"]["labels"] == {}


def test_kind_without_pods():
    assert extract_pod({"kind": "ConfigMap", "data": {"a": "b"}}) is None


def test_unrecognised_kind_with_containers(bare_pod):
    bare_pod["kind"] = "PodLike"

    assert extract_pod(bare_pod) == bare_pod


def test_unrecognised_kind_without_containers():
    with pytest.raises(InvalidDocumentShape, match="spec.containers"):
        extract_pod({"kind": "Widget", "spec": {"size": 3}})


def test_workload_without_template():
    with pytest.raises(InvalidDocumentShape, match="spec.template"):
        extract_pod({"kind": "Deployment", "metadata": {"name": "web"}, "spec": {"replicas": 1}})


def test_missing_kind():
    with pytest.raises(InvalidDocumentShape):
        extract_pod({"metadata": {"name": "web"}})


def test_spec_not_a_mapping():
    with pytest.raises(InvalidDocumentShape, match="spec"):
        extract_pod({"kind": "Deployment", "spec": ["template"]})
