"""Tests for transition, reward and observation point queries."""

from __future__ import annotations

import numpy as np
import pytest

from reco_engine.model.loader import build_model_tables
from reco_engine.model.recomodel import Recomodel
from reco_engine.model.transitions import TransitionModel


def _two_environment_model() -> Recomodel:
    history_nodes = 7
    transitions = np.zeros((2, history_nodes, 2, 2))
    transitions[0, :, :, 0] = 1.0
    transitions[1, :, :, 1] = 1.0
    return Recomodel(
        build_model_tables(np.array([1.0, 0.5]), transitions, history_length=2),
        seed=0,
    )


def test_chosen_target_has_probability_one(scenario_model: Recomodel) -> None:
    history = scenario_model.history
    for state_1 in range(scenario_model.n_states):
        for action in range(scenario_model.n_actions):
            chosen = history.next_state(state_1, action)
            for state_2 in range(scenario_model.n_states):
                probability = scenario_model.transition_probability(state_1, action, state_2)
                assert probability == (1.0 if state_2 == chosen else 0.0)


def test_reward_is_paid_only_on_matching_link(scenario_model: Recomodel) -> None:
    rewards = scenario_model.tables.rewards
    for state_1 in range(scenario_model.n_states):
        for action in range(scenario_model.n_actions):
            for state_2 in range(scenario_model.n_states):
                reward = scenario_model.expected_reward(state_1, action, state_2)
                link = scenario_model.is_connected(state_1, state_2)
                if link == action:
                    assert reward == rewards[action]
                else:
                    assert reward == 0.0


def test_unconnected_pairs_return_zero_without_raising(scenario_model: Recomodel) -> None:
    assert scenario_model.transition_probability(1, 0, 6) == 0.0
    assert scenario_model.expected_reward(1, 0, 6) == 0.0
    assert scenario_model.transition_probability(4, 1, 0) == 0.0


def test_observation_is_the_window_component(scenario_model: Recomodel) -> None:
    for state in range(scenario_model.n_states):
        for observation in range(scenario_model.n_observations):
            expected = 1.0 if observation == state else 0.0
            assert scenario_model.observation_probability(state, 0, observation) == expected


def test_queries_use_the_environment_profile() -> None:
    model = _two_environment_model()
    history = model.history
    state_env0 = history.state_id(0, 2)
    state_env1 = history.state_id(1, 2)

    assert model.transition_probability(state_env0, 1, history.state_id(0, 5)) == 1.0
    assert model.transition_probability(state_env1, 1, history.state_id(1, 6)) == 1.0
    assert model.transition_probability(state_env1, 1, history.state_id(1, 5)) == 0.0
    assert model.transition_probability(state_env0, 1, history.state_id(1, 5)) == 0.0
    assert model.expected_reward(state_env0, 1, history.state_id(1, 6)) == 0.0
    assert model.observation_probability(state_env1, 0, 2) == 1.0


def test_invalid_action_or_state_raises(scenario_model: Recomodel) -> None:
    with pytest.raises(ValueError):
        scenario_model.transition_probability(0, 2, 1)
    with pytest.raises(ValueError):
        scenario_model.expected_reward(0, -1, 1)
    with pytest.raises(ValueError):
        scenario_model.transition_probability(7, 0, 1)


def test_transition_model_rejects_mismatched_tables() -> None:
    tables = build_model_tables(np.array([1.0, 0.5]), np.ones((1, 7, 2, 2)), history_length=2)
    broken = type(tables)(
        summary=tables.summary,
        history=tables.history,
        rewards=np.ones(3),
        transitions=tables.transitions,
    )
    with pytest.raises(ValueError, match="Reward vector"):
        TransitionModel(broken)
