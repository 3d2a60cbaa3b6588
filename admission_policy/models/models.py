from enum import Enum
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def _stringify(value):
    """Keep YAML scalars such as `true` or `512` in their string form"""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return value


def _label_value(value):
    """A label or annotation written as `key:` with no value is empty, not missing"""
    if value is None:
        return ""
    return _stringify(value)


# Quantities stay unparsed strings; the rules parse them
Quantity = Annotated[str, BeforeValidator(_stringify)]
StringValue = Annotated[str, BeforeValidator(_label_value)]


class ManifestModel(BaseModel):
    """Base for the read-only manifest tree: camelCase keys, unknown fields kept"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra='allow',
    )


class SeccompProfile(ManifestModel):
    type: Optional[str] = None
    localhost_profile: Optional[str] = None


class Capabilities(ManifestModel):
    add: Optional[List[str]] = None
    drop: Optional[List[str]] = None


class SecurityContext(ManifestModel):
    privileged: Optional[bool] = None
    run_as_user: Optional[int] = None
    run_as_group: Optional[int] = None
    run_as_non_root: Optional[bool] = None
    allow_privilege_escalation: Optional[bool] = None
    read_only_root_filesystem: Optional[bool] = None
    capabilities: Optional[Capabilities] = None
    seccomp_profile: Optional[SeccompProfile] = None


class PodSecurityContext(ManifestModel):
    run_as_user: Optional[int] = None
    run_as_group: Optional[int] = None
    run_as_non_root: Optional[bool] = None
    fs_group: Optional[int] = None
    seccomp_profile: Optional[SeccompProfile] = None


class ResourceRequirements(ManifestModel):
    limits: Optional[Dict[str, Quantity]] = None
    requests: Optional[Dict[str, Quantity]] = None


class ContainerPort(ManifestModel):
    name: Optional[str] = None
    container_port: Optional[int] = None
    host_port: Optional[int] = None
    protocol: Optional[str] = None


class EnvVarSource(ManifestModel):
    secret_key_ref: Optional[Dict[str, Any]] = None
    config_map_key_ref: Optional[Dict[str, Any]] = None
    field_ref: Optional[Dict[str, Any]] = None


class EnvVar(ManifestModel):
    name: str
    value: Optional[str] = None
    value_from: Optional[EnvVarSource] = None


class Probe(ManifestModel):
    failure_threshold: Optional[int] = None
    success_threshold: Optional[int] = None
    period_seconds: Optional[int] = None
    initial_delay_seconds: Optional[int] = None


class Lifecycle(ManifestModel):
    pre_stop: Optional[Dict[str, Any]] = None
    post_start: Optional[Dict[str, Any]] = None


class Container(ManifestModel):
    name: str
    image: Optional[str] = None
    image_pull_policy: Optional[str] = None
    security_context: Optional[SecurityContext] = None
    resources: Optional[ResourceRequirements] = None
    ports: Optional[List[ContainerPort]] = None
    env: Optional[List[EnvVar]] = None
    liveness_probe: Optional[Probe] = None
    readiness_probe: Optional[Probe] = None
    startup_probe: Optional[Probe] = None
    lifecycle: Optional[Lifecycle] = None
    volume_mounts: Optional[List[Dict[str, Any]]] = None


class EmptyDirVolumeSource(ManifestModel):
    medium: Optional[str] = None
    size_limit: Optional[Quantity] = None


class Volume(ManifestModel):
    name: str
    host_path: Optional[Dict[str, Any]] = None
    empty_dir: Optional[EmptyDirVolumeSource] = None


class PodSpec(ManifestModel):
    host_network: Optional[bool] = None
    host_pid: Optional[bool] = Field(default=None, alias='hostPID')
    host_ipc: Optional[bool] = Field(default=None, alias='hostIPC')
    share_process_namespace: Optional[bool] = None
    automount_service_account_token: Optional[bool] = None
    termination_grace_period_seconds: Optional[int] = None
    security_context: Optional[PodSecurityContext] = None
    volumes: List[Volume] = Field(default_factory=list)
    containers: List[Container] = Field(default_factory=list)

    @field_validator('volumes', 'containers', mode='before')
    @classmethod
    def _null_as_empty(cls, value):
        return [] if value is None else value


class ObjectMeta(ManifestModel):
    name: Optional[str] = None
    namespace: Optional[str] = None
    labels: Dict[str, StringValue] = Field(default_factory=dict)
    annotations: Dict[str, StringValue] = Field(default_factory=dict)

    @field_validator('labels', 'annotations', mode='before')
    @classmethod
    def _null_as_empty(cls, value):
        return {} if value is None else value


class ManifestDocument(ManifestModel):
    """Pod-shaped resource under review"""
    kind: str
    api_version: Optional[str] = None
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: PodSpec = Field(default_factory=PodSpec)

    @field_validator('metadata', 'spec', mode='before')
    @classmethod
    def _null_as_default(cls, value):
        return {} if value is None else value

    @property
    def namespace(self) -> Optional[str]:
        return self.metadata.namespace

    @property
    def labels(self) -> Dict[str, str]:
        return self.metadata.labels

    @property
    def annotations(self) -> Dict[str, str]:
        return self.metadata.annotations


class Scope(str, Enum):
    POD = "pod"
    CONTAINER = "container"
    VOLUME = "volume"
    PORT = "port"
    ENV = "env"


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ViolationKind(str, Enum):
    POLICY = "policy"
    UNPARSABLE_QUANTITY = "unparsable_quantity"


class Violation(BaseModel):
    model_config = ConfigDict(frozen=True)

    rule_id: str
    message: str
    kind: ViolationKind = ViolationKind.POLICY
    severity: Severity = Severity.MEDIUM
    category: str = "Security"
    container: Optional[str] = None
    volume: Optional[str] = None


class RuleInfo(BaseModel):
    rule_id: str
    scope: Scope
    severity: Severity
    category: str
    description: str


class EvaluationResponse(BaseModel):
    compliant: bool
    violations: List[Violation] = []


class AdmissionRequest(BaseModel):
    """Subset of admission.k8s.io/v1 AdmissionRequest the webhook reads"""
    model_config = ConfigDict(extra='allow')

    uid: str
    namespace: Optional[str] = None
    operation: Optional[str] = None
    object: Optional[Dict[str, Any]] = None


class AdmissionReview(BaseModel):
    model_config = ConfigDict(extra='allow', populate_by_name=True)

    api_version: str = Field(default="admission.k8s.io/v1", alias='apiVersion')
    kind: str = "AdmissionReview"
    request: AdmissionRequest
