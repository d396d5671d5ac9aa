"""Model façade composing the history index, tables and sampler."""

from __future__ import annotations

from pathlib import Path

import numpy as np

from reco_engine.core.config import ModelConfig
from reco_engine.core.types import Item, NodeId, StateId, Window
from reco_engine.model.loader import (
    ModelTables,
    load_model_tables,
    load_model_tables_from_config,
)
from reco_engine.model.sampler import Sampler
from reco_engine.model.transitions import TransitionModel


class Recomodel:
    """Recommendation MEMDP over recency windows and hidden user environments.

    With environments disabled the model is a plain MDP whose states are the
    history nodes, with all environment profiles merged.
    """

    def __init__(
        self,
        tables: ModelTables,
        *,
        discount: float = 0.95,
        seed: int | None = None,
        rng: np.random.Generator | None = None,
    ) -> None:
        if not (0.0 < discount <= 1.0):
            raise ValueError("discount must be in (0, 1].")
        self.tables = tables
        self.history = tables.history
        self.transition_model = TransitionModel(tables)
        self.sampler = Sampler(self.transition_model, rng=rng, seed=seed)
        self._discount = float(discount)
        self._bottleneck_calls = 0

    @classmethod
    def from_config(cls, config: ModelConfig) -> "Recomodel":
        tables = load_model_tables_from_config(config)
        return cls(tables, discount=config.discount, seed=config.seed)

    @classmethod
    def from_files(
        cls,
        summary_path: Path,
        rewards_path: Path,
        transitions_path: Path,
        *,
        discount: float = 0.95,
        environments_enabled: bool = True,
        precise: bool = False,
        seed: int | None = None,
    ) -> "Recomodel":
        tables = load_model_tables(
            summary_path,
            rewards_path,
            transitions_path,
            environments_enabled=environments_enabled,
            precise=precise,
        )
        return cls(tables, discount=discount, seed=seed)

    # Dimensions

    @property
    def n_actions(self) -> int:
        return self.history.n_actions

    @property
    def n_observations(self) -> int:
        return self.history.n_nodes

    @property
    def n_nodes(self) -> int:
        return self.history.n_nodes

    @property
    def n_environments(self) -> int:
        return self.history.n_environments

    @property
    def n_states(self) -> int:
        return self.history.n_states

    @property
    def history_length(self) -> int:
        return self.history.history_length

    @property
    def discount(self) -> float:
        return self._discount

    @property
    def environments_enabled(self) -> bool:
        return self.history.environments_enabled

    @property
    def mdp_enabled(self) -> bool:
        """True when environments are disabled and the model is a plain MDP."""
        return not self.history.environments_enabled

    # Instrumentation

    @property
    def bottleneck_calls(self) -> int:
        return self._bottleneck_calls

    def record_bottleneck_call(self) -> int:
        """Count one expensive planning call (e.g. particle regeneration)."""
        self._bottleneck_calls += 1
        return self._bottleneck_calls

    # State predicates and accessors

    def is_terminal(self, state: StateId) -> bool:
        # Sessions end externally; no state is absorbing.
        self.history.validate_state(state)
        return False

    def is_initial(self, state: StateId) -> bool:
        """True for the empty window, in any environment."""
        return self.history.node_of(state) == 0

    def get_env(self, state: StateId) -> int:
        return self.history.environment_of(state)

    def get_node(self, state: StateId) -> NodeId:
        return self.history.node_of(state)

    def state_id(self, environment: int, node: NodeId) -> StateId:
        return self.history.state_id(environment, node)

    def state_to_id(self, window: Window) -> NodeId:
        return self.history.state_to_id(window)

    def id_to_state(self, node: NodeId) -> Window:
        return self.history.id_to_state(node)

    def next_state(self, node: NodeId, item: Item) -> NodeId:
        return self.history.next_state(node, item)

    def previous_states(self, node: NodeId) -> tuple[NodeId, ...]:
        return self.history.previous_states(node)

    def is_connected(self, state_1: StateId, state_2: StateId) -> int:
        return self.history.is_connected(state_1, state_2)

    # Queries

    def transition_probability(self, state_1: StateId, action: Item, state_2: StateId) -> float:
        return self.transition_model.transition_probability(state_1, action, state_2)

    def expected_reward(self, state_1: StateId, action: Item, state_2: StateId) -> float:
        return self.transition_model.expected_reward(state_1, action, state_2)

    def observation_probability(self, state: StateId, action: Item, observation: NodeId) -> float:
        return self.transition_model.observation_probability(state, action, observation)

    # Sampling

    def reseed(self, seed: int | None) -> None:
        self.sampler.reseed(seed)

    def sample_transition_reward(self, state: StateId, action: Item) -> tuple[StateId, float]:
        return self.sampler.sample_transition_reward(state, action)

    def sample_transition_observation_reward(
        self, state: StateId, action: Item
    ) -> tuple[StateId, NodeId, float]:
        return self.sampler.sample_transition_observation_reward(state, action)
