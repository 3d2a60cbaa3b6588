"""
Registry of the admission policy rules evaluated by Kure.

Every rule is an independent predicate over a single target (the pod, one
container, one volume, one port or one env var). A predicate returns the
violation message when it fires and None otherwise. Rules are kept in
declaration order, which is also the order violations are reported in.

Absence rules fire when a field is missing; value rules only look at fields
that are present and never fire on absence.
"""
from dataclasses import dataclass
from typing import Callable, List, Optional

from admission_policy.models.models import (
    Container, ContainerPort, EnvVar, ManifestDocument, RuleInfo, Scope,
    Severity, Volume,
)
from admission_policy.services.quantity import exceeds

PRODUCTION_NAMESPACE = "production"

MEMORY_LIMIT_CEILING = "2Gi"
CPU_LIMIT_CEILING = "2000m"
EMPTYDIR_SIZE_CEILING = "1Gi"
TERMINATION_GRACE_PERIOD_CEILING = 60
STARTUP_FAILURE_THRESHOLD_CEILING = 30
PROBE_FAILURE_THRESHOLD_CEILING = 5

REQUIRED_LABELS = ["app", "compliance", "environment"]
PSP_ANNOTATION = "kubernetes.io/psp"
PROMETHEUS_SCRAPE_ANNOTATION = "prometheus.io/scrape"
ISTIO_INJECT_ANNOTATION = "sidecar.istio.io/inject"


@dataclass(frozen=True)
class Target:
    """What a single rule evaluation looks at"""
    pod: ManifestDocument
    container: Optional[Container] = None
    volume: Optional[Volume] = None
    port: Optional[ContainerPort] = None
    env: Optional[EnvVar] = None


@dataclass(frozen=True)
class Rule:
    rule_id: str
    scope: Scope
    severity: Severity
    category: str
    description: str
    check: Callable[[Target], Optional[str]]

    def info(self) -> RuleInfo:
        return RuleInfo(
            rule_id=self.rule_id,
            scope=self.scope,
            severity=self.severity,
            category=self.category,
            description=self.description,
        )


POLICY_RULES: List[Rule] = []


def rule(rule_id: str, scope: Scope, severity: Severity, category: str, description: str):
    """Register the decorated predicate at the end of the catalog"""
    def register(check: Callable[[Target], Optional[str]]):
        POLICY_RULES.append(Rule(rule_id, scope, severity, category, description, check))
        return check
    return register


def _security_context(container: Container):
    return container.security_context


def _limits(container: Container) -> dict:
    if container.resources is None or container.resources.limits is None:
        return {}
    return container.resources.limits


# --- Pod Security ---

@rule("privileged-containers", Scope.POD, Severity.CRITICAL, "Pod Security",
      "Containers must not run in privileged mode.")
def check_privileged_containers(target: Target) -> Optional[str]:
    for container in target.pod.spec.containers:
        sec_ctx = _security_context(container)
        if sec_ctx and sec_ctx.privileged:
            return "Privileged containers are not allowed"
    return None


@rule("run-as-root", Scope.CONTAINER, Severity.HIGH, "Pod Security",
      "Containers must not explicitly run as UID 0.")
def check_run_as_root(target: Target) -> Optional[str]:
    sec_ctx = _security_context(target.container)
    if sec_ctx and sec_ctx.run_as_user == 0:
        return f"Container {target.container.name} must not run as root user (runAsUser: 0)"
    return None


@rule("run-as-non-root", Scope.CONTAINER, Severity.MEDIUM, "Pod Security",
      "Containers must set runAsNonRoot to true.")
def check_run_as_non_root(target: Target) -> Optional[str]:
    sec_ctx = _security_context(target.container)
    if not sec_ctx or sec_ctx.run_as_non_root is not True:
        return f"Container {target.container.name} must set runAsNonRoot to true"
    return None


@rule("privilege-escalation", Scope.CONTAINER, Severity.HIGH, "Pod Security",
      "Containers must not allow privilege escalation.")
def check_privilege_escalation(target: Target) -> Optional[str]:
    sec_ctx = _security_context(target.container)
    if sec_ctx and sec_ctx.allow_privilege_escalation is True:
        return f"Container {target.container.name} must not allow privilege escalation"
    return None


@rule("read-only-root-filesystem", Scope.CONTAINER, Severity.MEDIUM, "Pod Security",
      "Containers must mount their root filesystem read-only.")
def check_read_only_root_filesystem(target: Target) -> Optional[str]:
    sec_ctx = _security_context(target.container)
    if not sec_ctx or sec_ctx.read_only_root_filesystem is not True:
        return f"Container {target.container.name} must have readOnlyRootFilesystem set to true"
    return None


@rule("drop-all-capabilities", Scope.CONTAINER, Severity.MEDIUM, "Pod Security",
      "Containers must drop ALL Linux capabilities.")
def check_drop_all_capabilities(target: Target) -> Optional[str]:
    sec_ctx = _security_context(target.container)
    dropped = []
    if sec_ctx and sec_ctx.capabilities and sec_ctx.capabilities.drop:
        dropped = sec_ctx.capabilities.drop
    if "ALL" not in dropped:
        return f"Container {target.container.name} must drop ALL capabilities"
    return None


@rule("seccomp-profile", Scope.POD, Severity.MEDIUM, "Pod Security",
      "Pods must set a seccomp profile type in the pod securityContext.")
def check_seccomp_profile(target: Target) -> Optional[str]:
    pod_ctx = target.pod.spec.security_context
    if not pod_ctx or not pod_ctx.seccomp_profile or not pod_ctx.seccomp_profile.type:
        return "Pod must specify a seccomp profile type"
    return None


@rule("host-network", Scope.POD, Severity.HIGH, "Pod Security",
      "Pods must not use the host network namespace.")
def check_host_network(target: Target) -> Optional[str]:
    if target.pod.spec.host_network is True:
        return "Pod must not use the host network"
    return None


@rule("host-pid", Scope.POD, Severity.HIGH, "Pod Security",
      "Pods must not use the host PID namespace.")
def check_host_pid(target: Target) -> Optional[str]:
    if target.pod.spec.host_pid is True:
        return "Pod must not use the host PID namespace"
    return None


@rule("host-ipc", Scope.POD, Severity.HIGH, "Pod Security",
      "Pods must not use the host IPC namespace.")
def check_host_ipc(target: Target) -> Optional[str]:
    if target.pod.spec.host_ipc is True:
        return "Pod must not use the host IPC namespace"
    return None


# --- Resource Management ---

@rule("resource-limits", Scope.CONTAINER, Severity.MEDIUM, "Resource Management",
      "Containers must specify resource limits.")
def check_resource_limits(target: Target) -> Optional[str]:
    resources = target.container.resources
    if resources is None or resources.limits is None:
        return f"Container {target.container.name} must specify resource limits"
    return None


@rule("resource-requests", Scope.CONTAINER, Severity.MEDIUM, "Resource Management",
      "Containers must specify resource requests.")
def check_resource_requests(target: Target) -> Optional[str]:
    resources = target.container.resources
    if resources is None or resources.requests is None:
        return f"Container {target.container.name} must specify resource requests"
    return None


@rule("memory-limit-ceiling", Scope.CONTAINER, Severity.MEDIUM, "Resource Management",
      f"Container memory limits must not exceed {MEMORY_LIMIT_CEILING}.")
def check_memory_limit_ceiling(target: Target) -> Optional[str]:
    memory = _limits(target.container).get("memory")
    if memory is not None and exceeds(memory, MEMORY_LIMIT_CEILING):
        return f"Container {target.container.name} memory limit {memory} exceeds {MEMORY_LIMIT_CEILING}"
    return None


@rule("cpu-limit-ceiling", Scope.CONTAINER, Severity.MEDIUM, "Resource Management",
      f"Container CPU limits must not exceed {CPU_LIMIT_CEILING}.")
def check_cpu_limit_ceiling(target: Target) -> Optional[str]:
    cpu = _limits(target.container).get("cpu")
    if cpu is not None and exceeds(cpu, CPU_LIMIT_CEILING):
        return f"Container {target.container.name} CPU limit {cpu} exceeds {CPU_LIMIT_CEILING}"
    return None


# --- Best Practices ---

@rule("liveness-probe", Scope.CONTAINER, Severity.LOW, "Best Practices",
      "Containers must define a liveness probe.")
def check_liveness_probe(target: Target) -> Optional[str]:
    if target.container.liveness_probe is None:
        return f"Container {target.container.name} must define a livenessProbe"
    return None


@rule("readiness-probe", Scope.CONTAINER, Severity.LOW, "Best Practices",
      "Containers must define a readiness probe.")
def check_readiness_probe(target: Target) -> Optional[str]:
    if target.container.readiness_probe is None:
        return f"Container {target.container.name} must define a readinessProbe"
    return None


@rule("container-security-context", Scope.CONTAINER, Severity.MEDIUM, "Pod Security",
      "Containers must define a securityContext.")
def check_container_security_context(target: Target) -> Optional[str]:
    if target.container.security_context is None:
        return f"Container {target.container.name} must define a securityContext"
    return None


@rule("pod-security-context", Scope.POD, Severity.MEDIUM, "Pod Security",
      "Pods must define a pod-level securityContext.")
def check_pod_security_context(target: Target) -> Optional[str]:
    if target.pod.spec.security_context is None:
        return "Pod must define a pod-level securityContext"
    return None


# --- Image Security ---

@rule("latest-image-tag", Scope.CONTAINER, Severity.MEDIUM, "Image Security",
      "Container images must not use the :latest tag.")
def check_latest_image_tag(target: Target) -> Optional[str]:
    image = target.container.image
    if image and image.endswith(":latest"):
        return f"Container {target.container.name} must not use the ':latest' image tag"
    return None


@rule("image-pull-policy", Scope.CONTAINER, Severity.LOW, "Image Security",
      "Containers must set an explicit imagePullPolicy.")
def check_image_pull_policy(target: Target) -> Optional[str]:
    if target.container.image_pull_policy is None:
        return f"Container {target.container.name} must specify an imagePullPolicy"
    return None


@rule("production-pull-policy", Scope.CONTAINER, Severity.LOW, "Image Security",
      "Containers in the production namespace must not use imagePullPolicy Always.")
def check_production_pull_policy(target: Target) -> Optional[str]:
    if target.pod.namespace == PRODUCTION_NAMESPACE and target.container.image_pull_policy == "Always":
        return (f"Container {target.container.name} must not use imagePullPolicy Always "
                f"in the {PRODUCTION_NAMESPACE} namespace")
    return None


# --- Compliance ---

def _register_label_rule(label: str):
    @rule(f"{label}-label", Scope.POD, Severity.LOW, "Compliance",
          f"Pods must carry the '{label}' label.")
    def check_label(target: Target) -> Optional[str]:
        if label not in target.pod.labels:
            return f"Pod must have the '{label}' label"
        return None
    return check_label


for _label in REQUIRED_LABELS:
    _register_label_rule(_label)


@rule("automount-service-account-token", Scope.POD, Severity.MEDIUM, "Pod Security",
      "Pods must not automount the service account token.")
def check_automount_service_account_token(target: Target) -> Optional[str]:
    # Absent is compliant; only an explicit true fires
    if target.pod.spec.automount_service_account_token is True:
        return "Pod must not automount the service account token"
    return None


@rule("share-process-namespace", Scope.POD, Severity.MEDIUM, "Pod Security",
      "Pods must not share a single process namespace between containers.")
def check_share_process_namespace(target: Target) -> Optional[str]:
    if target.pod.spec.share_process_namespace is True:
        return "Pod must not share the process namespace"
    return None


@rule("termination-grace-period", Scope.POD, Severity.LOW, "Best Practices",
      "Pods must set terminationGracePeriodSeconds.")
def check_termination_grace_period(target: Target) -> Optional[str]:
    if target.pod.spec.termination_grace_period_seconds is None:
        return "Pod must specify terminationGracePeriodSeconds"
    return None


@rule("termination-grace-period-ceiling", Scope.POD, Severity.LOW, "Best Practices",
      f"terminationGracePeriodSeconds must not exceed {TERMINATION_GRACE_PERIOD_CEILING}.")
def check_termination_grace_period_ceiling(target: Target) -> Optional[str]:
    grace_period = target.pod.spec.termination_grace_period_seconds
    if grace_period is not None and grace_period > TERMINATION_GRACE_PERIOD_CEILING:
        return (f"Pod terminationGracePeriodSeconds {grace_period} exceeds "
                f"{TERMINATION_GRACE_PERIOD_CEILING}")
    return None


# --- Storage ---

@rule("volume-mounts", Scope.CONTAINER, Severity.LOW, "Storage",
      "Containers must declare volumeMounts.")
def check_volume_mounts(target: Target) -> Optional[str]:
    if target.container.volume_mounts is None:
        return f"Container {target.container.name} must define volumeMounts"
    return None


@rule("host-path-volume", Scope.VOLUME, Severity.HIGH, "Storage",
      "Pods must not mount hostPath volumes.")
def check_host_path_volume(target: Target) -> Optional[str]:
    if target.volume.host_path is not None:
        return f"Volume {target.volume.name} must not use hostPath"
    return None


@rule("empty-dir-size-limit", Scope.VOLUME, Severity.LOW, "Storage",
      "emptyDir volumes must set a sizeLimit.")
def check_empty_dir_size_limit(target: Target) -> Optional[str]:
    empty_dir = target.volume.empty_dir
    if empty_dir is not None and empty_dir.size_limit is None:
        return f"Volume {target.volume.name} emptyDir must specify a sizeLimit"
    return None


@rule("empty-dir-size-ceiling", Scope.VOLUME, Severity.LOW, "Storage",
      f"emptyDir sizeLimit must not exceed {EMPTYDIR_SIZE_CEILING}.")
def check_empty_dir_size_ceiling(target: Target) -> Optional[str]:
    empty_dir = target.volume.empty_dir
    if empty_dir is None or empty_dir.size_limit is None:
        return None
    if exceeds(empty_dir.size_limit, EMPTYDIR_SIZE_CEILING):
        return (f"Volume {target.volume.name} emptyDir sizeLimit {empty_dir.size_limit} "
                f"exceeds {EMPTYDIR_SIZE_CEILING}")
    return None


# --- Networking ---

@rule("container-ports", Scope.CONTAINER, Severity.LOW, "Networking",
      "Containers must declare the ports they expose.")
def check_container_ports(target: Target) -> Optional[str]:
    if target.container.ports is None:
        return f"Container {target.container.name} must define ports"
    return None


@rule("unnamed-udp-port", Scope.PORT, Severity.LOW, "Networking",
      "UDP container ports must be named.")
def check_unnamed_udp_port(target: Target) -> Optional[str]:
    if target.port.protocol == "UDP" and not target.port.name:
        return f"Container {target.container.name} has an unnamed UDP port {target.port.container_port}"
    return None


# --- Configuration ---

@rule("container-env", Scope.CONTAINER, Severity.LOW, "Configuration",
      "Containers must declare environment variables.")
def check_container_env(target: Target) -> Optional[str]:
    if target.container.env is None:
        return f"Container {target.container.name} must define environment variables"
    return None


@rule("secret-key-ref", Scope.ENV, Severity.HIGH, "Configuration",
      "SECRET_KEY must be loaded from a Secret, never set inline.")
def check_secret_key_ref(target: Target) -> Optional[str]:
    if target.env.name != "SECRET_KEY":
        return None
    value_from = target.env.value_from
    if value_from is None or value_from.secret_key_ref is None:
        return f"Container {target.container.name} must load SECRET_KEY from a secretKeyRef"
    return None


# --- Lifecycle ---

@rule("lifecycle-hooks", Scope.CONTAINER, Severity.LOW, "Best Practices",
      "Containers must define lifecycle hooks.")
def check_lifecycle_hooks(target: Target) -> Optional[str]:
    if target.container.lifecycle is None:
        return f"Container {target.container.name} must define lifecycle hooks"
    return None


@rule("pre-stop-hook", Scope.CONTAINER, Severity.LOW, "Best Practices",
      "Containers must define a preStop hook for graceful shutdown.")
def check_pre_stop_hook(target: Target) -> Optional[str]:
    lifecycle = target.container.lifecycle
    if lifecycle is None or lifecycle.pre_stop is None:
        return f"Container {target.container.name} must define a preStop lifecycle hook"
    return None


def _register_probe_threshold_rule(probe_field: str, probe_name: str, ceiling: int):
    @rule(f"{probe_name[:-len('Probe')]}-probe-threshold", Scope.CONTAINER, Severity.LOW,
          "Best Practices", f"{probe_name} failureThreshold must not exceed {ceiling}.")
    def check_probe_threshold(target: Target) -> Optional[str]:
        probe = getattr(target.container, probe_field)
        if probe is None or probe.failure_threshold is None:
            return None
        if probe.failure_threshold > ceiling:
            return (f"Container {target.container.name} {probe_name} failureThreshold "
                    f"{probe.failure_threshold} exceeds {ceiling}")
        return None
    return check_probe_threshold


_register_probe_threshold_rule("startup_probe", "startupProbe", STARTUP_FAILURE_THRESHOLD_CEILING)
_register_probe_threshold_rule("liveness_probe", "livenessProbe", PROBE_FAILURE_THRESHOLD_CEILING)
_register_probe_threshold_rule("readiness_probe", "readinessProbe", PROBE_FAILURE_THRESHOLD_CEILING)


# --- Observability ---

def _register_annotation_rule(rule_id: str, annotation: str, category: str):
    @rule(rule_id, Scope.POD, Severity.LOW, category,
          f"Pods must carry the '{annotation}' annotation.")
    def check_annotation(target: Target) -> Optional[str]:
        if annotation not in target.pod.annotations:
            return f"Pod must have the '{annotation}' annotation"
        return None
    return check_annotation


_register_annotation_rule("psp-annotation", PSP_ANNOTATION, "Compliance")
_register_annotation_rule("prometheus-scrape-annotation", PROMETHEUS_SCRAPE_ANNOTATION, "Observability")


@rule("production-istio-injection", Scope.POD, Severity.MEDIUM, "Networking",
      "Istio sidecar injection must not be enabled in the production namespace.")
def check_production_istio_injection(target: Target) -> Optional[str]:
    inject = target.pod.annotations.get(ISTIO_INJECT_ANNOTATION)
    if target.pod.namespace == PRODUCTION_NAMESPACE and inject is not None and inject.lower() == "true":
        return f"Pod must not enable Istio sidecar injection in the {PRODUCTION_NAMESPACE} namespace"
    return None


def get_rule(rule_id: str) -> Optional[Rule]:
    return next((r for r in POLICY_RULES if r.rule_id == rule_id), None)
