"""Tests for recency-window encoding and tree navigation."""

from __future__ import annotations

from itertools import product

import pytest

from reco_engine.core.history import HistoryIndex, count_nodes

SHAPES = ((2, 2), (3, 3), (1, 3), (4, 1), (2, 4))


def _all_windows(n_actions: int, history_length: int) -> list[tuple[int, ...]]:
    windows: list[tuple[int, ...]] = []
    for length in range(history_length + 1):
        windows.extend(product(range(n_actions), repeat=length))
    return windows


def test_count_nodes_matches_closed_form() -> None:
    assert count_nodes(2, 2) == 7
    assert count_nodes(3, 3) == (3**4 - 1) // (3 - 1)
    assert count_nodes(1, 4) == 5


def test_weights_for_two_items_and_two_slots() -> None:
    index = HistoryIndex(n_actions=2, history_length=2)
    assert index.pows == (2, 1)
    assert index.acpows == (3, 1, 0)
    assert index.n_nodes == 7


def test_known_window_ids() -> None:
    index = HistoryIndex(n_actions=2, history_length=2)
    assert index.state_to_id(()) == 0
    assert index.state_to_id((0,)) == 1
    assert index.state_to_id((1,)) == 2
    assert index.state_to_id((0, 0)) == 3
    assert index.state_to_id((1, 0)) == 5
    assert index.state_to_id((1, 1)) == 6


@pytest.mark.parametrize("n_actions,history_length", SHAPES)
def test_ids_round_trip_through_windows(n_actions: int, history_length: int) -> None:
    index = HistoryIndex(n_actions=n_actions, history_length=history_length)
    for node in range(index.n_nodes):
        assert index.state_to_id(index.id_to_state(node)) == node


@pytest.mark.parametrize("n_actions,history_length", SHAPES)
def test_windows_map_onto_dense_ids(n_actions: int, history_length: int) -> None:
    index = HistoryIndex(n_actions=n_actions, history_length=history_length)
    windows = _all_windows(n_actions, history_length)
    ids = [index.state_to_id(window) for window in windows]

    assert sorted(ids) == list(range(index.n_nodes))
    for window, node in zip(windows, ids):
        assert index.id_to_state(node) == window
        assert index.depth(node) == len(window)
        assert index.is_full(node) == (len(window) == history_length)


@pytest.mark.parametrize("n_actions,history_length", SHAPES)
def test_next_state_appends_and_slides(n_actions: int, history_length: int) -> None:
    index = HistoryIndex(n_actions=n_actions, history_length=history_length)
    for node in range(index.n_nodes):
        window = index.id_to_state(node)
        for item in range(n_actions):
            child = index.next_state(node, item)
            expected = (window + (item,))[-history_length:]
            assert index.id_to_state(child) == expected


def test_full_window_slides_to_full_window() -> None:
    index = HistoryIndex(n_actions=2, history_length=2)
    node = index.state_to_id((1, 0))
    child = index.next_state(node, 1)
    assert index.id_to_state(child) == (0, 1)
    assert index.is_full(child)
    assert index.children(0) == (1, 2)


@pytest.mark.parametrize("n_actions,history_length", SHAPES)
def test_previous_states_inverts_next_state(n_actions: int, history_length: int) -> None:
    index = HistoryIndex(n_actions=n_actions, history_length=history_length)
    parents: dict[int, set[int]] = {node: set() for node in range(index.n_nodes)}
    for node in range(index.n_nodes):
        for child in index.children(node):
            parents[child].add(node)

    for node in range(index.n_nodes):
        assert set(index.previous_states(node)) == parents[node]


def test_previous_states_counts() -> None:
    index = HistoryIndex(n_actions=3, history_length=2)
    assert index.previous_states(0) == ()
    assert index.previous_states(index.state_to_id((2,))) == (0,)
    full = index.state_to_id((1, 2))
    candidates = index.previous_states(full)
    assert len(candidates) == 3 + 1
    assert index.state_to_id((1,)) in candidates


def test_node_link_reports_edge_label_or_sentinel() -> None:
    index = HistoryIndex(n_actions=2, history_length=2)
    assert index.node_link(0, 2) == 1
    assert index.node_link(3, 4) == 1
    assert index.node_link(5, 3) == 0
    assert index.node_link(1, 5) == index.no_link
    assert index.node_link(4, 0) == index.no_link
    assert index.no_link >= index.n_actions


def test_is_connected_requires_same_environment() -> None:
    index = HistoryIndex(n_actions=2, history_length=2, n_environments=3)
    assert index.n_states == 21
    state_1 = index.state_id(1, 2)
    state_2 = index.state_id(1, 6)
    assert index.is_connected(state_1, state_2) == 1
    assert index.is_connected(state_1, index.state_id(2, 6)) == index.no_link
    assert index.environment_of(state_2) == 1
    assert index.node_of(state_2) == 6


def test_disabled_environments_use_node_ids_as_states() -> None:
    index = HistoryIndex(
        n_actions=2, history_length=2, n_environments=3, environments_enabled=False
    )
    assert index.n_states == index.n_nodes
    assert index.state_id(2, 5) == 5
    assert index.environment_of(5) == 0
    assert index.is_connected(1, 3) == 0


def test_navigation_is_pure() -> None:
    index = HistoryIndex(n_actions=3, history_length=2)
    first = [index.next_state(node, 2) for node in range(index.n_nodes)]
    second = [index.next_state(node, 2) for node in range(index.n_nodes)]
    assert first == second
    assert index.is_connected(4, index.next_state(4, 0)) == 0
    assert index.is_connected(4, index.next_state(4, 0)) == 0


def test_invalid_inputs_raise() -> None:
    index = HistoryIndex(n_actions=2, history_length=2)
    with pytest.raises(ValueError):
        index.state_to_id((0, 1, 0))
    with pytest.raises(ValueError):
        index.state_to_id((2,))
    with pytest.raises(ValueError):
        index.id_to_state(7)
    with pytest.raises(ValueError):
        index.next_state(0, 2)
    with pytest.raises(ValueError):
        index.validate_state(-1)
    with pytest.raises(ValueError):
        HistoryIndex(n_actions=0, history_length=2)
