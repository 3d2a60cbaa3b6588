import logging
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from admission_policy.errors import InvalidDocumentShape, ManifestLoadError

logger = logging.getLogger(__name__)


def load_manifests(text: str) -> List[Dict[str, Any]]:
    """Decode every YAML document in text, skipping empty ones"""
    try:
        documents = list(yaml.safe_load_all(text))
    except yaml.YAMLError as e:
        raise ManifestLoadError(f"Could not parse manifest YAML: {e}") from e

    manifests = []
    for index, document in enumerate(documents):
        if document is None:
            continue
        if not isinstance(document, dict):
            raise InvalidDocumentShape(
                f"Document {index} is a {type(document).__name__}, expected a mapping"
            )
        manifests.append(document)

    logger.debug(f"Loaded {len(manifests)} manifest(s)")
    return manifests


def load_manifest_file(path: Union[str, Path]) -> List[Dict[str, Any]]:
    try:
        text = Path(path).read_text()
    except OSError as e:
        raise ManifestLoadError(f"Could not read manifest file {path}: {e}") from e
    return load_manifests(text)
