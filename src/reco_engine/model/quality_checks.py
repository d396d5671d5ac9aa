"""Quality checks for loaded recommendation models."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from reco_engine.model.recomodel import Recomodel

_ROW_ATOL = 1e-9


@dataclass(frozen=True)
class CheckResult:
    """One quality-check result."""

    name: str
    passed: bool
    details: str
    metric: float | None = None

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "name": self.name,
            "passed": self.passed,
            "details": self.details,
        }
        if self.metric is not None:
            payload["metric"] = self.metric
        return payload


@dataclass(frozen=True)
class QualityReport:
    """Aggregated hard/conceptual checks."""

    hard_checks: tuple[CheckResult, ...]
    conceptual_checks: tuple[CheckResult, ...]
    strict_conceptual: bool

    @property
    def hard_failures(self) -> tuple[CheckResult, ...]:
        return tuple(check for check in self.hard_checks if not check.passed)

    @property
    def conceptual_warnings(self) -> tuple[CheckResult, ...]:
        return tuple(check for check in self.conceptual_checks if not check.passed)

    @property
    def passed(self) -> bool:
        if self.hard_failures:
            return False
        if self.strict_conceptual and self.conceptual_warnings:
            return False
        return True

    def to_dict(self) -> dict[str, object]:
        return {
            "hard_checks": [check.to_dict() for check in self.hard_checks],
            "conceptual_checks": [check.to_dict() for check in self.conceptual_checks],
            "hard_failures": [check.to_dict() for check in self.hard_failures],
            "conceptual_warnings": [
                check.to_dict() for check in self.conceptual_warnings
            ],
            "strict_conceptual": self.strict_conceptual,
            "passed": self.passed,
        }


def run_model_checks(
    model: Recomodel,
    *,
    row_atol: float = _ROW_ATOL,
    strict_conceptual: bool = False,
) -> QualityReport:
    """Run hard + conceptual checks against a loaded model."""
    hard_checks = (
        _check_index_bijection(model),
        _check_row_stochastic(model, row_atol=row_atol),
        _check_non_negative(model),
        _check_disconnected_support(model),
        _check_reward_gating(model),
    )
    conceptual_checks = (
        _check_acceptance_mass(model),
        _check_profiles_distinct(model),
    )
    return QualityReport(
        hard_checks=hard_checks,
        conceptual_checks=conceptual_checks,
        strict_conceptual=strict_conceptual,
    )


def _check_index_bijection(model: Recomodel) -> CheckResult:
    history = model.history
    for node in range(history.n_nodes):
        window = history.id_to_state(node)
        if history.state_to_id(window) != node:
            return CheckResult(
                name="index_bijection",
                passed=False,
                details=f"node {node} decodes to {window} which encodes differently",
            )
        for link, child in enumerate(history.children(node)):
            if history.node_link(node, child) != link or node not in history.previous_states(
                child
            ):
                return CheckResult(
                    name="index_bijection",
                    passed=False,
                    details=f"edge {node} -[{link}]-> {child} is not navigable both ways",
                )
    return CheckResult(
        name="index_bijection",
        passed=True,
        details=f"validated {history.n_nodes} node ids and their children",
    )


def _check_row_stochastic(model: Recomodel, row_atol: float) -> CheckResult:
    sums = model.tables.transitions.sum(axis=-1)
    deviation = np.abs(sums - 1.0)
    worst = float(deviation.max())
    if worst > row_atol:
        profile, node, action = (int(v) for v in np.unravel_index(deviation.argmax(), sums.shape))
        return CheckResult(
            name="row_stochastic",
            passed=False,
            details=(
                f"probability mass={sums[profile, node, action]:.12f} at "
                f"profile={profile}, node={node}, action={action}"
            ),
            metric=worst,
        )
    return CheckResult(
        name="row_stochastic",
        passed=True,
        details=f"validated {sums.size} profile-node-action distributions",
        metric=worst,
    )


def _check_non_negative(model: Recomodel) -> CheckResult:
    negatives = int(np.count_nonzero(model.tables.transitions < 0.0))
    if negatives:
        return CheckResult(
            name="non_negative",
            passed=False,
            details=f"{negatives} negative transition probabilities",
        )
    return CheckResult(name="non_negative", passed=True, details="all probabilities >= 0")


def _check_disconnected_support(model: Recomodel) -> CheckResult:
    history = model.history
    profiles, nodes, _, links = np.nonzero(model.tables.transitions > 0.0)
    for profile, node, link in zip(profiles.tolist(), nodes.tolist(), links.tolist()):
        child = history.next_state(node, link)
        if history.node_link(node, child) != link:
            return CheckResult(
                name="disconnected_support",
                passed=False,
                details=(
                    f"mass on link={link} from node={node} in profile={profile} "
                    f"does not reach its child {child}"
                ),
            )
    return CheckResult(
        name="disconnected_support",
        passed=True,
        details=f"{len(links)} positive entries all lead to connected children",
    )


def _check_reward_gating(model: Recomodel) -> CheckResult:
    history = model.history
    environments = range(model.n_environments) if model.environments_enabled else (0,)
    for environment in environments:
        for node in range(history.n_nodes):
            state = history.state_id(environment, node)
            for action in range(model.n_actions):
                for link, child in enumerate(history.children(node)):
                    next_state = history.state_id(environment, child)
                    reward = model.expected_reward(state, action, next_state)
                    if link != action and reward != 0.0:
                        return CheckResult(
                            name="reward_gating",
                            passed=False,
                            details=(
                                f"reward {reward} paid for action={action} "
                                f"realized as link={link} at state={state}"
                            ),
                        )
    return CheckResult(
        name="reward_gating",
        passed=True,
        details="rewards are only paid when the realized link matches the action",
    )


def _check_acceptance_mass(model: Recomodel) -> CheckResult:
    transitions = model.tables.transitions
    accepted = np.diagonal(transitions, axis1=2, axis2=3)
    per_profile = accepted.mean(axis=(1, 2))
    dead = [int(profile) for profile in np.flatnonzero(per_profile <= 0.0)]
    if dead:
        return CheckResult(
            name="acceptance_mass",
            passed=False,
            details=f"profiles never accepting a recommendation: {dead}",
            metric=float(per_profile.min()),
        )
    return CheckResult(
        name="acceptance_mass",
        passed=True,
        details="every profile accepts some recommendations",
        metric=float(per_profile.min()),
    )


def _check_profiles_distinct(model: Recomodel) -> CheckResult:
    transitions = model.tables.transitions
    n_profiles = transitions.shape[0]
    for first in range(n_profiles):
        for second in range(first + 1, n_profiles):
            if np.allclose(transitions[first], transitions[second]):
                return CheckResult(
                    name="profiles_distinct",
                    passed=False,
                    details=f"environments {first} and {second} have identical dynamics",
                )
    return CheckResult(
        name="profiles_distinct",
        passed=True,
        details=f"{n_profiles} profile(s) pairwise distinct",
    )
