import pytest

from admission_policy.errors import InvalidDocumentShape, ManifestLoadError
from admission_policy.services.manifest_loader import load_manifest_file, load_manifests


MULTI_DOCUMENT = """\
apiVersion: v1
kind: Pod
metadata:
  name: web
spec:
  containers:
    - name: app
      image: nginx:1.25
      resources:
        limits:
          cpu: 2
          memory: 512Mi
---
---
apiVersion: v1
kind: Service
metadata:
  name: web
"""


def test_load_multiple_documents():
    manifests = load_manifests(MULTI_DOCUMENT)

    assert [m["kind"] for m in manifests] == ["Pod", "Service"]
    assert manifests[0]["spec"]["containers"][0]["resources"]["limits"]["cpu"] == 2


def test_empty_text():
    assert load_manifests("") == []


def test_invalid_yaml():
    with pytest.raises(ManifestLoadError):
        load_manifests("kind: Pod\nspec: [unclosed")


def test_non_mapping_document():
    with pytest.raises(InvalidDocumentShape, match="Document 0"):
        load_manifests("- just\n- a list\n")


def test_load_manifest_file(tmp_path):
    path = tmp_path / "pod.yaml"
    path.write_text(MULTI_DOCUMENT)

    assert len(load_manifest_file(path)) == 2


def test_missing_file(tmp_path):
    with pytest.raises(ManifestLoadError):
        load_manifest_file(tmp_path / "missing.yaml")
