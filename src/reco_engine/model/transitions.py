"""Point queries on the tabular transition, reward and observation model."""

from __future__ import annotations

import numpy as np

from reco_engine.core.history import HistoryIndex
from reco_engine.core.types import Item, NodeId, StateId
from reco_engine.model.loader import ModelTables


class TransitionModel:
    """Read-only transition/reward lookups keyed by state ids.

    Every query first resolves the state pair to a link through the history
    index; pairs that are not one step apart have probability and reward 0.
    """

    def __init__(self, tables: ModelTables) -> None:
        expected_shape = (
            tables.n_profiles,
            tables.summary.n_nodes,
            tables.summary.n_actions,
            tables.summary.n_actions,
        )
        if tables.transitions.shape != expected_shape:
            raise ValueError(
                f"Transition table has shape {tables.transitions.shape}, "
                f"expected {expected_shape}."
            )
        if tables.rewards.shape != (tables.summary.n_actions,):
            raise ValueError(
                f"Reward vector has shape {tables.rewards.shape}, "
                f"expected ({tables.summary.n_actions},)."
            )
        self.tables = tables
        self.history: HistoryIndex = tables.history

    @property
    def rewards(self) -> np.ndarray:
        return self.tables.rewards

    def profile_of(self, state: StateId) -> int:
        """Profile holding the dynamics of ``state``'s environment."""
        if not self.history.environments_enabled:
            return 0
        return self.history.environment_of(state)

    def row(self, state: StateId, action: Item) -> np.ndarray:
        """Distribution over links for ``action`` taken in ``state``."""
        self.history.validate_action(action)
        return self._row(self.profile_of(state), self.history.node_of(state), action)

    def transition_probability(self, state_1: StateId, action: Item, state_2: StateId) -> float:
        self.history.validate_action(action)
        link = self.history.is_connected(state_1, state_2)
        if link >= self.history.n_actions:
            return 0.0
        row = self._row(self.profile_of(state_1), self.history.node_of(state_1), action)
        return float(row[link])

    def expected_reward(self, state_1: StateId, action: Item, state_2: StateId) -> float:
        """Reward of item ``action`` if the realized link equals it, else 0."""
        self.history.validate_action(action)
        link = self.history.is_connected(state_1, state_2)
        if link != action:
            return 0.0
        return float(self.rewards[link])

    def observation_probability(self, state: StateId, action: Item, observation: NodeId) -> float:
        """The window is fully observable: 1 iff ``observation`` is ``state``'s node."""
        if self.history.node_of(state) == observation:
            return 1.0
        return 0.0

    def reward_for(self, action: Item, link: Item) -> float:
        if action != link:
            return 0.0
        return float(self.rewards[link])

    def _row(self, profile: int, node: NodeId, action: Item) -> np.ndarray:
        assert 0 <= profile < self.tables.n_profiles, profile
        assert 0 <= node < self.history.n_nodes, node
        assert 0 <= action < self.history.n_actions, action
        return self.tables.transitions[profile, node, action]
