"""
Pre-dispatch guards.

A guard matches the identifier of the route (or controller action) about to
run against an ordered list of rules. The first matching rule governs; rule
order is kept exactly as configured. Identifiers matching no rule fall back
to the guard's protection policy, which allows by default: guards are deny
lists, not allow lists.

Guards never raise on a mismatch. They return a ``GuardVerdict`` naming the
rule that decided.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from .defaults import PROTECTION_POLICIES
from .exceptions import GuardConfigurationError

logger = logging.getLogger(__name__)

WILDCARD = "*"
POLICY_ALLOW = "allow"
POLICY_DENY = "deny"


@dataclass(frozen=True)
class GuardRule:
    """A pattern (literal or ``prefix*``) and the roles or permissions it requires."""

    pattern: str
    requirements: frozenset[str] = field(default_factory=frozenset)
    rule_id: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.pattern, str) or not self.pattern:
            raise GuardConfigurationError("Guard rule pattern must be a non-empty string")
        if isinstance(self.requirements, str):
            object.__setattr__(self, "requirements", frozenset([self.requirements]))
        elif not isinstance(self.requirements, frozenset):
            object.__setattr__(self, "requirements", frozenset(self.requirements))
        if self.rule_id is None:
            object.__setattr__(self, "rule_id", self.pattern)

    def matches(self, identifier: str) -> bool:
        if self.pattern.endswith(WILDCARD):
            return identifier.startswith(self.pattern[:-1])
        return identifier == self.pattern


@dataclass(frozen=True)
class GuardVerdict:
    """Outcome of a guard evaluation."""

    allowed: bool
    guard: str
    rule_id: Optional[str] = None
    reason: str = "no_rule_matched"
    missing: frozenset[str] = field(default_factory=frozenset)


RuleSpec = Union[GuardRule, Mapping[str, Any], Sequence[Any]]


class BaseGuard:
    """Shared first-match-wins evaluation."""

    name = "guard"
    requirement_key = "roles"

    def __init__(
        self,
        rules: Union[Mapping[str, Iterable[str]], Iterable[RuleSpec]] = (),
        protection_policy: str = POLICY_ALLOW,
    ):
        if protection_policy not in PROTECTION_POLICIES:
            raise GuardConfigurationError(
                f"Unknown protection policy {protection_policy!r}", guard=self.name
            )
        self.protection_policy = protection_policy
        self.rules: tuple[GuardRule, ...] = tuple(self._build_rules(rules))
        for rule in self.rules:
            if not rule.requirements:
                raise GuardConfigurationError(
                    f"Guard rule {rule.rule_id!r} lists no {self.requirement_key}",
                    guard=self.name,
                )

    def _build_rules(
        self, rules: Union[Mapping[str, Iterable[str]], Iterable[RuleSpec]]
    ) -> list[GuardRule]:
        if isinstance(rules, Mapping):
            return [GuardRule(pattern, requirements) for pattern, requirements in rules.items()]
        return [self._build_rule(spec) for spec in rules]

    def _build_rule(self, spec: RuleSpec) -> GuardRule:
        if isinstance(spec, GuardRule):
            return spec
        if isinstance(spec, Mapping):
            if "pattern" not in spec:
                raise GuardConfigurationError(f"Guard rule {spec!r} has no pattern", guard=self.name)
            if self.requirement_key not in spec:
                raise GuardConfigurationError(
                    f"Guard rule {spec!r} has no {self.requirement_key!r} entry", guard=self.name
                )
            return GuardRule(
                spec["pattern"],
                spec[self.requirement_key],
                spec.get("id"),
            )
        try:
            pattern, requirements = spec
        except (TypeError, ValueError):
            raise GuardConfigurationError(
                f"Guard rule {spec!r} must be a (pattern, {self.requirement_key}) pair",
                guard=self.name,
            ) from None
        return GuardRule(pattern, requirements)

    def match(self, identifier: str) -> Optional[GuardRule]:
        """Return the first rule matching ``identifier``."""
        for rule in self.rules:
            if rule.matches(identifier):
                return rule
        return None

    def evaluate(self, identifier: str, identity: Any, resolver: Any) -> GuardVerdict:
        rule = self.match(identifier)
        if rule is None:
            if self.protection_policy == POLICY_DENY:
                return GuardVerdict(False, self.name, reason="protection_policy_deny")
            return GuardVerdict(True, self.name, reason="no_rule_matched")

        if WILDCARD in rule.requirements:
            return GuardVerdict(True, self.name, rule.rule_id, "requirements_met")

        missing = self._missing_requirements(rule, identity, resolver)
        if missing:
            return GuardVerdict(False, self.name, rule.rule_id, "requirements_missing", missing)
        return GuardVerdict(True, self.name, rule.rule_id, "requirements_met")

    def _missing_requirements(self, rule: GuardRule, identity: Any, resolver: Any) -> frozenset[str]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(rules={len(self.rules)}, protection_policy={self.protection_policy!r})"


class RouteGuard(BaseGuard):
    """Requires at least one of the rule's roles (hierarchy included)."""

    name = "route"

    def _missing_requirements(self, rule: GuardRule, identity: Any, resolver: Any) -> frozenset[str]:
        effective_roles = resolver.effective_roles(identity)
        if effective_roles.isdisjoint(rule.requirements):
            return rule.requirements
        return frozenset()


class RoutePermissionsGuard(BaseGuard):
    """Requires every permission listed by the rule."""

    name = "route_permissions"
    requirement_key = "permissions"

    def _missing_requirements(self, rule: GuardRule, identity: Any, resolver: Any) -> frozenset[str]:
        return frozenset(
            permission
            for permission in rule.requirements
            if not resolver.is_granted(identity, permission)
        )


class ControllerGuard(RouteGuard):
    """
    Role guard keyed by controller and action.

    Rules are ``(controller, actions, roles)`` triples; an empty action list
    covers every action. Identifiers have the form ``"<controller>:<action>"``.
    """

    name = "controller"

    @staticmethod
    def identifier(controller: str, action: str) -> str:
        return f"{controller}:{action}"

    def _build_rules(self, rules: Iterable[Any]) -> list[GuardRule]:
        if isinstance(rules, Mapping):
            raise GuardConfigurationError(
                "Controller guard rules must be an ordered list", guard=self.name
            )
        built: list[GuardRule] = []
        for spec in rules:
            if isinstance(spec, GuardRule):
                built.append(spec)
                continue
            if isinstance(spec, Mapping):
                controller = spec.get("controller")
                actions = spec.get("actions") or ()
                roles = spec.get("roles", ())
            else:
                try:
                    controller, actions, roles = spec
                except (TypeError, ValueError):
                    raise GuardConfigurationError(
                        f"Controller rule {spec!r} must be a (controller, actions, roles) triple",
                        guard=self.name,
                    ) from None
            if not controller:
                raise GuardConfigurationError(f"Controller rule {spec!r} has no controller", guard=self.name)
            if isinstance(actions, str):
                actions = [actions]
            if not actions:
                built.append(GuardRule(f"{controller}:{WILDCARD}", roles, controller))
                continue
            for action in actions:
                identifier = self.identifier(controller, action)
                built.append(GuardRule(identifier, roles, identifier))
        return built


class GuardEvaluator:
    """Runs every guard in order; any deny denies."""

    def __init__(self, guards: Iterable[BaseGuard] = ()):
        self.guards = list(guards)

    def evaluate(self, identifier: str, identity: Any, resolver: Any) -> GuardVerdict:
        for guard in self.guards:
            verdict = guard.evaluate(identifier, identity, resolver)
            if not verdict.allowed:
                logger.debug(
                    "Guard '%s' denied '%s' (rule=%s, reason=%s)",
                    guard.name,
                    identifier,
                    verdict.rule_id,
                    verdict.reason,
                )
                return verdict
        return GuardVerdict(True, "guards", reason="guards_passed" if self.guards else "no_guards")

    def __len__(self) -> int:
        return len(self.guards)


GUARD_TYPES: dict[str, type[BaseGuard]] = {
    RouteGuard.name: RouteGuard,
    RoutePermissionsGuard.name: RoutePermissionsGuard,
    ControllerGuard.name: ControllerGuard,
}


def build_guards(
    config: Optional[Mapping[str, Any]], protection_policy: str = POLICY_ALLOW
) -> list[BaseGuard]:
    """
    Build guards from configuration, keeping the configured order.

    Args:
        config: ``{"route": [...], "route_permissions": [...], "controller": [...]}``
        protection_policy: Verdict for identifiers no rule matches

    Raises:
        GuardConfigurationError: On unknown guard types or malformed rules.
    """
    guards: list[BaseGuard] = []
    for guard_type, rules in (config or {}).items():
        guard_class = GUARD_TYPES.get(guard_type)
        if guard_class is None:
            raise GuardConfigurationError(f"Unknown guard type {guard_type!r}", guard=guard_type)
        guards.append(guard_class(rules or (), protection_policy=protection_policy))
    return guards


__all__ = [
    "WILDCARD",
    "POLICY_ALLOW",
    "POLICY_DENY",
    "GuardRule",
    "GuardVerdict",
    "BaseGuard",
    "RouteGuard",
    "RoutePermissionsGuard",
    "ControllerGuard",
    "GuardEvaluator",
    "GUARD_TYPES",
    "build_guards",
]
