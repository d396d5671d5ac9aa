"""Capability interface consumed by planners and evaluators."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from reco_engine.core.types import Item, NodeId, StateId


@runtime_checkable
class MEMDPModel(Protocol):
    """What a solver may ask of a model, independent of the solver kind."""

    @property
    def n_actions(self) -> int: ...

    @property
    def n_observations(self) -> int: ...

    @property
    def n_environments(self) -> int: ...

    @property
    def n_states(self) -> int: ...

    @property
    def discount(self) -> float: ...

    @property
    def mdp_enabled(self) -> bool: ...

    @property
    def bottleneck_calls(self) -> int: ...

    def record_bottleneck_call(self) -> int: ...

    def is_terminal(self, state: StateId) -> bool: ...

    def is_initial(self, state: StateId) -> bool: ...

    def get_env(self, state: StateId) -> int: ...

    def get_node(self, state: StateId) -> NodeId: ...

    def transition_probability(self, state_1: StateId, action: Item, state_2: StateId) -> float: ...

    def expected_reward(self, state_1: StateId, action: Item, state_2: StateId) -> float: ...

    def observation_probability(self, state: StateId, action: Item, observation: NodeId) -> float: ...

    def sample_transition_reward(self, state: StateId, action: Item) -> tuple[StateId, float]: ...

    def sample_transition_observation_reward(
        self, state: StateId, action: Item
    ) -> tuple[StateId, NodeId, float]: ...
