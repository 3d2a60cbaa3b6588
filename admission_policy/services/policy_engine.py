import logging
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, Iterable, Iterator, List, Optional, Union

from pydantic import ValidationError

from admission_policy.errors import InvalidDocumentShape, QuantityError
from admission_policy.models.models import (
    ManifestDocument, RuleInfo, Scope, Violation, ViolationKind,
)
from admission_policy.policies.registry import POLICY_RULES, Rule, Target
from admission_policy.services.workloads import extract_pod

logger = logging.getLogger(__name__)


def build_document(document: Union[Mapping, ManifestDocument]) -> ManifestDocument:
    """Validate a decoded Pod manifest and wrap it in the read-only model"""
    if isinstance(document, ManifestDocument):
        return document
    if not isinstance(document, Mapping):
        raise InvalidDocumentShape("Manifest must be a mapping")
    if not isinstance(document.get("kind"), str) or not document.get("kind"):
        raise InvalidDocumentShape("Manifest is missing 'kind'")

    spec = document.get("spec")
    if spec is not None:
        if not isinstance(spec, Mapping):
            raise InvalidDocumentShape("spec must be a mapping")
        containers = spec.get("containers")
        if containers is not None and (
                not isinstance(containers, Sequence) or isinstance(containers, (str, bytes))):
            raise InvalidDocumentShape("spec.containers must be a sequence")

    try:
        return ManifestDocument.model_validate(document)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in e.errors()
        ]
        raise InvalidDocumentShape("Manifest does not match the Pod shape", errors) from e


def iter_targets(scope: Scope, pod: ManifestDocument) -> Iterator[Target]:
    """Yield the targets a rule of the given scope is evaluated against, in manifest order"""
    if scope == Scope.POD:
        yield Target(pod=pod)
    elif scope == Scope.CONTAINER:
        for container in pod.spec.containers:
            yield Target(pod=pod, container=container)
    elif scope == Scope.VOLUME:
        for volume in pod.spec.volumes:
            yield Target(pod=pod, volume=volume)
    elif scope == Scope.PORT:
        for container in pod.spec.containers:
            for port in container.ports or []:
                yield Target(pod=pod, container=container, port=port)
    elif scope == Scope.ENV:
        for container in pod.spec.containers:
            for env in container.env or []:
                yield Target(pod=pod, container=container, env=env)


def _subject(target: Target) -> str:
    if target.container is not None:
        return f"Container {target.container.name}"
    if target.volume is not None:
        return f"Volume {target.volume.name}"
    return "Pod"


class PolicyEngine:
    """Evaluates every rule of a catalog against a Pod manifest.

    No rule short-circuits another: the result is the full list of
    violations in catalog order, then container, volume, port or env var
    order within each rule.
    """

    def __init__(self, rules: Optional[Iterable[Rule]] = None,
                 disabled_rules: Iterable[str] = (), max_workers: int = 1):
        self.rules: List[Rule] = list(POLICY_RULES if rules is None else rules)
        known_ids = {r.rule_id for r in self.rules}
        self.disabled_rules = set()
        for rule_id in disabled_rules:
            if rule_id not in known_ids:
                logger.warning(f"Ignoring unknown rule in disabled rules: {rule_id}")
                continue
            self.disabled_rules.add(rule_id)
        self.max_workers = max(1, max_workers)

    @property
    def active_rules(self) -> List[Rule]:
        return [r for r in self.rules if r.rule_id not in self.disabled_rules]

    def list_rules(self) -> List[RuleInfo]:
        return [r.info() for r in self.active_rules]

    def evaluate(self, document: Union[Mapping, ManifestDocument]) -> List[Violation]:
        """Evaluate a manifest and return all violations; an empty list means compliant.

        Workload controllers are evaluated through their pod template. Kinds
        known to carry no pods yield no violations. Raises InvalidDocumentShape
        when the manifest cannot be evaluated at all.
        """
        if not isinstance(document, ManifestDocument):
            document = extract_pod(document)
            if document is None:
                return []
        pod = build_document(document)

        rules = self.active_rules
        logger.debug(
            f"Evaluating {pod.kind} {pod.metadata.namespace}/{pod.metadata.name} "
            f"against {len(rules)} rules"
        )

        evaluate_rule = partial(self._evaluate_rule, pod=pod)
        if self.max_workers > 1:
            # map() keeps catalog order regardless of completion order
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                per_rule = list(executor.map(evaluate_rule, rules))
        else:
            per_rule = [evaluate_rule(r) for r in rules]

        violations = [v for rule_violations in per_rule for v in rule_violations]
        logger.debug(f"Found {len(violations)} violations for {pod.metadata.namespace}/{pod.metadata.name}")
        return violations

    def _evaluate_rule(self, rule: Rule, pod: ManifestDocument) -> List[Violation]:
        violations = []
        for target in iter_targets(rule.scope, pod):
            try:
                message = rule.check(target)
            except QuantityError as e:
                logger.warning(f"Rule {rule.rule_id} could not parse quantity {e.quantity!r} for {_subject(target)}")
                violations.append(self._violation(
                    rule, target,
                    f"{_subject(target)} has an unparsable quantity '{e.quantity}' ({rule.rule_id})",
                    ViolationKind.UNPARSABLE_QUANTITY,
                ))
                continue
            if message is not None:
                violations.append(self._violation(rule, target, message))
        return violations

    @staticmethod
    def _violation(rule: Rule, target: Target, message: str,
                   kind: ViolationKind = ViolationKind.POLICY) -> Violation:
        return Violation(
            rule_id=rule.rule_id,
            message=message,
            kind=kind,
            severity=rule.severity,
            category=rule.category,
            container=target.container.name if target.container is not None else None,
            volume=target.volume.name if target.volume is not None else None,
        )


_default_engine = PolicyEngine()


def evaluate(document: Union[Mapping[str, Any], ManifestDocument]) -> List[Violation]:
    """Evaluate a manifest against the full rule catalog"""
    return _default_engine.evaluate(document)


def list_rules() -> List[RuleInfo]:
    return _default_engine.list_rules()
