"""Seeded sampling of transitions consistent with the probability table."""

from __future__ import annotations

import numpy as np

from reco_engine.core.types import Item, NodeId, SampledStep, StateId
from reco_engine.model.transitions import TransitionModel


class Sampler:
    """Draws realized links from a transition model.

    The generator is owned by the sampler and carries state across calls, so
    one sampler should be used per session or execution context.
    """

    def __init__(
        self,
        model: TransitionModel,
        rng: np.random.Generator | None = None,
        seed: int | None = None,
    ) -> None:
        if rng is not None and seed is not None:
            raise ValueError("Pass either rng or seed, not both.")
        self.model = model
        self.rng = rng if rng is not None else np.random.default_rng(seed)

    def reseed(self, seed: int | None) -> None:
        self.rng = np.random.default_rng(seed)

    def sample_link(self, state: StateId, action: Item) -> Item:
        """Draw a link from the categorical row of ``(state, action)``."""
        row = self.model.row(state, action)
        cdf = np.cumsum(row)
        link = int(np.searchsorted(cdf, self.rng.random(), side="right"))
        # Rounding can leave cdf[-1] slightly under 1; never land on an empty tail.
        return min(link, int(np.flatnonzero(row)[-1]))

    def sample_step(self, state: StateId, action: Item) -> SampledStep:
        history = self.model.history
        link = self.sample_link(state, action)
        observation = history.next_state(history.node_of(state), link)
        next_state = history.state_id(history.environment_of(state), observation)
        return SampledStep(
            next_state=next_state,
            observation=observation,
            reward=self.model.reward_for(action, link),
            link=link,
        )

    def sample_transition_reward(self, state: StateId, action: Item) -> tuple[StateId, float]:
        step = self.sample_step(state, action)
        return step.next_state, step.reward

    def sample_transition_observation_reward(
        self, state: StateId, action: Item
    ) -> tuple[StateId, NodeId, float]:
        step = self.sample_step(state, action)
        return step.next_state, step.observation, step.reward
