"""Recency-window encoding and tree navigation for the recommendation MEMDP.

A history node is a window of at most ``H`` recently accepted items. Windows
are stored oldest first as tuples of 0-indexed items. For encoding, a window is
left-padded to length ``H`` with the empty digit ``0`` and each item ``x`` is
written as the digit ``x + 1``; the node id is then ``sum(digit[i] * pows[i])``
with ``pows[i] = K ** (H - 1 - i)``. Because non-empty digits live in
``1..K``, this is a bijective base-``K`` numeration and ids are dense in
``[0, N)`` with ``N = 1 + K + ... + K ** H``.

Ids of depth ``d`` start at ``acpows[H - d]`` where
``acpows[i] = sum(pows[i:])`` (and ``acpows[H] = 0``), so ``acpows[0]`` is the
first full-depth id and ``acpows[1]`` is the first id of depth ``H - 1``.
"""

from __future__ import annotations

from reco_engine.core.types import Item, NodeId, StateId, Window


def count_nodes(n_actions: int, history_length: int) -> int:
    """Return ``1 + K + ... + K ** H``, the number of windows of length <= H."""
    if n_actions < 1:
        raise ValueError("n_actions must be at least 1.")
    if history_length < 1:
        raise ValueError("history_length must be at least 1.")
    return sum(n_actions**depth for depth in range(history_length + 1))


class HistoryIndex:
    """Dense ids for bounded recency windows plus parent/child navigation.

    State ids combine an environment and a node as ``env * N + node``; with
    environments disabled the state id is the node id itself.
    """

    def __init__(
        self,
        n_actions: int,
        history_length: int,
        n_environments: int = 1,
        environments_enabled: bool = True,
    ) -> None:
        if n_environments < 1:
            raise ValueError("n_environments must be at least 1.")
        self.n_actions = n_actions
        self.history_length = history_length
        self.n_environments = n_environments
        self.environments_enabled = environments_enabled
        self.n_nodes = count_nodes(n_actions, history_length)

        pows = [1] * history_length
        acpows = [0] * (history_length + 1)
        acpows[history_length - 1] = 1
        for i in range(history_length - 2, -1, -1):
            pows[i] = pows[i + 1] * n_actions
            acpows[i] = acpows[i + 1] + pows[i]
        self.pows: tuple[int, ...] = tuple(pows)
        self.acpows: tuple[int, ...] = tuple(acpows)

    @property
    def n_states(self) -> int:
        if not self.environments_enabled:
            return self.n_nodes
        return self.n_nodes * self.n_environments

    @property
    def no_link(self) -> int:
        """Sentinel returned by connectivity lookups for unconnected pairs."""
        return self.n_actions

    # Window <-> id

    def state_to_id(self, window: Window) -> NodeId:
        """Encode a window (oldest item first) as its dense node id."""
        window = tuple(window)
        if len(window) > self.history_length:
            raise ValueError(
                f"Window of length {len(window)} exceeds history length "
                f"{self.history_length}."
            )
        for item in window:
            self._validate_item(item)
        padding = self.history_length - len(window)
        node = 0
        for position, item in enumerate(window, start=padding):
            node += (item + 1) * self.pows[position]
        return node

    def id_to_state(self, node: NodeId) -> Window:
        """Decode a node id back into its window (oldest item first)."""
        self._validate_node(node)
        items: list[int] = []
        while node > 0:
            node, digit = divmod(node - 1, self.n_actions)
            items.append(digit)
        return tuple(reversed(items))

    # Tree navigation

    def depth(self, node: NodeId) -> int:
        """Number of items held by the window of ``node``."""
        self._validate_node(node)
        for depth in range(self.history_length, 0, -1):
            if node >= self.acpows[self.history_length - depth]:
                return depth
        return 0

    def is_full(self, node: NodeId) -> bool:
        return node >= self.acpows[0]

    def next_state(self, node: NodeId, item: Item) -> NodeId:
        """Append ``item`` to the window, sliding it when already full."""
        self._validate_node(node)
        self._validate_item(item)
        return self._suffix(node) * self.n_actions + item + 1

    def children(self, node: NodeId) -> tuple[NodeId, ...]:
        """Children of ``node`` indexed by link."""
        return tuple(self.next_state(node, item) for item in range(self.n_actions))

    def previous_states(self, node: NodeId) -> tuple[NodeId, ...]:
        """Every node ``p`` such that ``next_state(p, item) == node`` for some item.

        Full-depth nodes have ``K + 1`` candidates: the depth ``H - 1`` window
        they extend, and the ``K`` full windows that slide into them.
        """
        self._validate_node(node)
        if node == 0:
            return ()
        prefix = self._prefix(node)
        if not self.is_full(node):
            return (prefix,)
        return (prefix,) + tuple(
            prefix + oldest * self.pows[0] for oldest in range(1, self.n_actions + 1)
        )

    def node_link(self, node_1: NodeId, node_2: NodeId) -> int:
        """Link leading from ``node_1`` to ``node_2``, or :attr:`no_link`."""
        self._validate_node(node_1)
        self._validate_node(node_2)
        if node_2 == 0:
            return self.no_link
        if self._suffix(node_1) != self._prefix(node_2):
            return self.no_link
        return (node_2 - 1) % self.n_actions

    def is_connected(self, state_1: StateId, state_2: StateId) -> int:
        """Link leading from ``state_1`` to ``state_2``, or :attr:`no_link`.

        States in different environments are never connected.
        """
        if self.environment_of(state_1) != self.environment_of(state_2):
            return self.no_link
        return self.node_link(self.node_of(state_1), self.node_of(state_2))

    # State <-> (environment, node)

    def state_id(self, environment: int, node: NodeId) -> StateId:
        self._validate_node(node)
        if not self.environments_enabled:
            return node
        if not (0 <= environment < self.n_environments):
            raise ValueError(
                f"Invalid environment {environment}. "
                f"Expected in [0, {self.n_environments - 1}]."
            )
        return environment * self.n_nodes + node

    def environment_of(self, state: StateId) -> int:
        self.validate_state(state)
        if not self.environments_enabled:
            return 0
        return state // self.n_nodes

    def node_of(self, state: StateId) -> NodeId:
        self.validate_state(state)
        return state % self.n_nodes

    def validate_state(self, state: StateId) -> None:
        if not (0 <= state < self.n_states):
            raise ValueError(
                f"Invalid state {state}. Expected in [0, {self.n_states - 1}]."
            )

    def validate_action(self, action: Item) -> None:
        self._validate_item(action)

    # Internals

    def _suffix(self, node: NodeId) -> NodeId:
        """Window that gets extended when appending to ``node``."""
        if not self.is_full(node):
            return node
        # Drop the oldest digit; the rest is a depth H-1 window.
        base = self.acpows[1]
        return base + (node - base) % self.pows[0]

    def _prefix(self, node: NodeId) -> NodeId:
        """Window of ``node`` without its most recent item."""
        return (node - 1) // self.n_actions

    def _validate_node(self, node: NodeId) -> None:
        if not (0 <= node < self.n_nodes):
            raise ValueError(f"Invalid node {node}. Expected in [0, {self.n_nodes - 1}].")

    def _validate_item(self, item: Item) -> None:
        if not (0 <= item < self.n_actions):
            raise ValueError(f"Invalid item {item}. Expected in [0, {self.n_actions - 1}].")
