"""Shared identifier and window types used across the model modules."""

from __future__ import annotations

from dataclasses import dataclass


Item = int
NodeId = int
StateId = int
Window = tuple[int, ...]


@dataclass(frozen=True)
class ModelSummary:
    """Dimensions declared by a ``.summary`` file.

    Attributes:
        n_nodes: Number of history nodes (observations) N.
        n_actions: Number of items K.
        n_environments: Number of hidden environments E.
        history_length: Maximum recency-window length H.
    """

    n_nodes: int
    n_actions: int
    n_environments: int
    history_length: int


@dataclass(frozen=True)
class SampledStep:
    """One sampled transition."""

    next_state: StateId
    observation: NodeId
    reward: float
    link: Item
