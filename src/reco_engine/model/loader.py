"""Parsing and validation of ``.summary``, ``.rewards`` and ``.transitions`` files."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import math
from pathlib import Path
from typing import Iterable

import numpy as np

from reco_engine.core.config import ModelConfig
from reco_engine.core.errors import (
    DisconnectedTransitionError,
    EmptyTransitionRowError,
    IncompleteRewardsError,
    InconsistentSummaryError,
    IndexOutOfRangeError,
    MalformedLineError,
    ProfileCountMismatchError,
    RowCountMismatchError,
)
from reco_engine.core.history import HistoryIndex, count_nodes
from reco_engine.core.types import ModelSummary

logger = logging.getLogger(__name__)

SUMMARY_FIELDS: tuple[str, ...] = (
    "n_nodes",
    "n_actions",
    "n_environments",
    "history_length",
)


@dataclass(frozen=True)
class ModelTables:
    """Validated, normalized and read-only model tables.

    Attributes:
        summary: Declared model dimensions.
        history: Window index matching the summary.
        rewards: Reward per link, shape ``(K,)``.
        transitions: Probability per ``(profile, node, action, link)``.
    """

    summary: ModelSummary
    history: HistoryIndex
    rewards: np.ndarray
    transitions: np.ndarray

    @property
    def environments_enabled(self) -> bool:
        return self.history.environments_enabled

    @property
    def n_profiles(self) -> int:
        return int(self.transitions.shape[0])


def load_summary(path: Path) -> ModelSummary:
    """Read the four model dimensions and check they describe a valid tree."""
    values: list[int] = []
    with _open_model_file(path, "Summary") as fh:
        for line_no, line in enumerate(fh, start=1):
            tokens = line.split()
            if not tokens:
                continue
            if len(tokens) != 1:
                raise MalformedLineError(
                    f"expected a single integer, got {len(tokens)} tokens",
                    path,
                    line_no,
                )
            if len(values) == len(SUMMARY_FIELDS):
                raise MalformedLineError("unexpected extra summary line", path, line_no)
            values.append(_parse_int(tokens[0], path, line_no))

    if len(values) != len(SUMMARY_FIELDS):
        raise MalformedLineError(
            f"expected {len(SUMMARY_FIELDS)} values "
            f"({', '.join(SUMMARY_FIELDS)}), found {len(values)}",
            path,
        )
    summary = ModelSummary(*values)
    for name, value in zip(SUMMARY_FIELDS, values):
        if value < 1:
            raise InconsistentSummaryError(f"{name} must be positive, got {value}", path)

    expected_nodes = count_nodes(summary.n_actions, summary.history_length)
    if summary.n_nodes != expected_nodes:
        raise InconsistentSummaryError(
            f"number of observations and actions do not match: n_nodes={summary.n_nodes}, "
            f"expected {expected_nodes} for n_actions={summary.n_actions} and "
            f"history_length={summary.history_length}",
            path,
        )
    return summary


def load_rewards(path: Path, n_actions: int) -> np.ndarray:
    """Read ``<item> <reward>`` lines with 1-indexed items, each exactly once."""
    rewards = np.zeros(n_actions, dtype=np.float64)
    seen: set[int] = set()
    with _open_model_file(path, "Rewards") as fh:
        for line_no, line in enumerate(fh, start=1):
            tokens = line.split()
            if not tokens:
                continue
            if len(tokens) != 2:
                raise MalformedLineError(
                    f"expected '<item> <reward>', got {len(tokens)} tokens", path, line_no
                )
            item = _parse_int(tokens[0], path, line_no)
            value = _parse_float(tokens[1], path, line_no)
            if not (1 <= item <= n_actions):
                raise IndexOutOfRangeError(
                    f"invalid reward entry for item {item}, expected in [1, {n_actions}]",
                    path,
                    line_no,
                )
            if item in seen:
                raise IncompleteRewardsError(f"duplicate reward for item {item}", path, line_no)
            seen.add(item)
            rewards[item - 1] = value

    missing = sorted(set(range(1, n_actions + 1)) - seen)
    if missing:
        shown = ", ".join(str(item) for item in missing[:10])
        raise IncompleteRewardsError(
            f"missing {len(missing)} item(s) while parsing rewards: {shown}", path
        )
    return rewards


def load_transitions(
    path: Path,
    history: HistoryIndex,
    *,
    show_progress: bool = False,
) -> np.ndarray:
    """Read transition profiles into an unnormalized ``(P, N, K, K)`` table.

    Every line that is not an ``<s1> <a> <s2> <probability>`` entry, blank or
    otherwise, closes the profile being read.

    With environments enabled there is one profile per environment. Otherwise
    the file may hold one profile or one per environment, and every profile is
    summed into a single merged profile.
    """
    n_nodes = history.n_nodes
    n_actions = history.n_actions
    n_environments = history.n_environments
    merged = not history.environments_enabled
    rows_per_profile = n_nodes * n_actions * n_actions

    table = np.zeros(
        (1 if merged else n_environments, n_nodes, n_actions, n_actions),
        dtype=np.float64,
    )
    profiles_found = 0
    transitions_found = 0

    def close_profile(line_no: int | None) -> None:
        nonlocal profiles_found, transitions_found
        if transitions_found != rows_per_profile:
            raise RowCountMismatchError(
                f"incomplete transition function in profile {profiles_found}: "
                f"found {transitions_found} entries, expected {rows_per_profile}",
                path,
                line_no,
            )
        profiles_found += 1
        transitions_found = 0

    with _open_model_file(path, "Transitions") as fh:
        lines: Iterable[str] = fh
        progress = None
        if show_progress:
            # Import tqdm lazily to avoid notebook-side effects when progress is disabled.
            from tqdm.auto import tqdm

            progress = tqdm(
                fh,
                total=n_environments * (rows_per_profile + 1),
                desc="Loading transitions",
                dynamic_ncols=True,
                leave=False,
            )
            lines = progress
        try:
            line_no = 0
            for line_no, line in enumerate(lines, start=1):
                entry = _match_transition(line.split(), path, line_no)
                if entry is None:
                    # Any line outside the entry pattern closes the open profile.
                    if transitions_found:
                        close_profile(line_no)
                    continue
                if transitions_found == 0 and profiles_found >= n_environments:
                    raise ProfileCountMismatchError(
                        f"too many profiles, expected at most {n_environments}",
                        path,
                        line_no,
                    )
                node_1, action, node_2, probability = entry
                if not (0 <= node_1 < n_nodes and 0 <= node_2 < n_nodes):
                    raise IndexOutOfRangeError(
                        f"state pair ({node_1}, {node_2}) outside [0, {n_nodes - 1}]",
                        path,
                        line_no,
                    )
                if not (1 <= action <= n_actions):
                    raise IndexOutOfRangeError(
                        f"action {action} outside [1, {n_actions}]", path, line_no
                    )

                link = history.node_link(node_1, node_2)
                if link == history.no_link:
                    if probability > 0.0:
                        raise DisconnectedTransitionError(
                            f"unfeasible transition {node_1} -> {node_2} with "
                            f"probability {probability}",
                            path,
                            line_no,
                        )
                elif merged:
                    table[0, node_1, action - 1, link] += probability
                else:
                    table[profiles_found, node_1, action - 1, link] = probability
                transitions_found += 1

            if transitions_found:
                close_profile(line_no)
        finally:
            if progress is not None:
                progress.close()

    valid_counts = {1, n_environments} if merged else {n_environments}
    if profiles_found not in valid_counts:
        expected = " or ".join(str(count) for count in sorted(valid_counts))
        raise ProfileCountMismatchError(
            f"missing profiles: found {profiles_found}, expected {expected}", path
        )
    return table


def row_sums(table: np.ndarray, precise: bool = False) -> np.ndarray:
    """Sum each row over the last axis.

    ``precise`` switches to Kahan compensated summation, slower by a constant
    factor but stable when a row mixes very different magnitudes.
    """
    if not precise:
        return table.sum(axis=-1)

    total = np.zeros(table.shape[:-1], dtype=np.float64)
    correction = np.zeros_like(total)
    for link in range(table.shape[-1]):
        value = table[..., link] - correction
        running = total + value
        correction = (running - total) - value
        total = running
    return total


def normalize_rows(
    table: np.ndarray,
    precise: bool = False,
    path: Path | None = None,
) -> np.ndarray:
    """Scale every ``(profile, node, action)`` row into a distribution over links."""
    sums = row_sums(table, precise=precise)
    empty = np.argwhere(sums <= 0.0)
    if empty.size:
        profile, node, action = (int(value) for value in empty[0])
        raise EmptyTransitionRowError(
            f"{len(empty)} row(s) with zero probability mass, first at "
            f"profile={profile}, node={node}, action={action + 1}",
            path,
        )
    return table / sums[..., np.newaxis]


def load_model_tables(
    summary_path: Path,
    rewards_path: Path,
    transitions_path: Path,
    *,
    environments_enabled: bool = True,
    precise: bool = False,
    show_progress: bool = False,
) -> ModelTables:
    """Load, validate and normalize all model tables."""
    summary = load_summary(Path(summary_path))
    history = HistoryIndex(
        n_actions=summary.n_actions,
        history_length=summary.history_length,
        n_environments=summary.n_environments,
        environments_enabled=environments_enabled,
    )
    rewards = load_rewards(Path(rewards_path), n_actions=summary.n_actions)
    raw = load_transitions(Path(transitions_path), history, show_progress=show_progress)
    transitions = normalize_rows(raw, precise=precise, path=Path(transitions_path))

    rewards.setflags(write=False)
    transitions.setflags(write=False)

    if environments_enabled:
        logger.info(
            "Loaded MEMDP: %s observations, %s actions, %s states, %s environments",
            summary.n_nodes,
            summary.n_actions,
            history.n_states,
            summary.n_environments,
        )
    else:
        logger.info(
            "Loaded MDP: %s actions, %s states", summary.n_actions, summary.n_nodes
        )
    return ModelTables(
        summary=summary,
        history=history,
        rewards=rewards,
        transitions=transitions,
    )


def build_model_tables(
    rewards: np.ndarray,
    transitions: np.ndarray,
    history_length: int,
    *,
    environments_enabled: bool = True,
    precise: bool = False,
) -> ModelTables:
    """Build model tables from in-memory arrays indexed like the loaded ones.

    ``transitions`` has shape ``(E, N, K, K)`` and is normalized here.
    """
    rewards = np.array(rewards, dtype=np.float64)
    transitions = np.array(transitions, dtype=np.float64)
    if transitions.ndim != 4:
        raise ValueError(f"transitions must be 4-dimensional, got {transitions.ndim}.")
    n_profiles, n_nodes, n_actions, n_links = transitions.shape
    if n_links != n_actions:
        raise ValueError(f"transitions has {n_links} links for {n_actions} actions.")
    if rewards.shape != (n_actions,):
        raise ValueError(f"rewards must have shape ({n_actions},), got {rewards.shape}.")
    if np.any(transitions < 0.0) or not np.all(np.isfinite(transitions)):
        raise ValueError("transitions must be finite and non-negative.")

    summary = ModelSummary(
        n_nodes=n_nodes,
        n_actions=n_actions,
        n_environments=n_profiles,
        history_length=history_length,
    )
    expected_nodes = count_nodes(n_actions, history_length)
    if n_nodes != expected_nodes:
        raise InconsistentSummaryError(
            f"n_nodes={n_nodes} does not match {expected_nodes} for "
            f"n_actions={n_actions} and history_length={history_length}"
        )
    history = HistoryIndex(
        n_actions=n_actions,
        history_length=history_length,
        n_environments=n_profiles,
        environments_enabled=environments_enabled,
    )
    if not environments_enabled:
        transitions = transitions.sum(axis=0, keepdims=True)
    transitions = normalize_rows(transitions, precise=precise)

    rewards.setflags(write=False)
    transitions.setflags(write=False)
    return ModelTables(
        summary=summary,
        history=history,
        rewards=rewards,
        transitions=transitions,
    )


def load_model_tables_from_config(config: ModelConfig) -> ModelTables:
    """Load model tables from the files named by ``config``."""
    config.validate()
    return load_model_tables(
        config.summary_path,
        config.rewards_path,
        config.transitions_path,
        environments_enabled=config.environments_enabled,
        precise=config.precise_normalization,
        show_progress=config.show_progress,
    )


def _open_model_file(path: Path, kind: str):
    if not path.exists() or not path.is_file():
        raise FileNotFoundError(f"{kind} file not found: {path}")
    return path.open("r", encoding="utf-8")


def _match_transition(
    tokens: list[str], path: Path, line_no: int
) -> tuple[int, int, int, float] | None:
    """Parse an ``<s1> <a> <s2> <probability>`` entry, or ``None`` for a separator."""
    if len(tokens) != 4:
        return None
    try:
        node_1, action, node_2 = (int(token) for token in tokens[:3])
        probability = float(tokens[3])
    except ValueError:
        return None
    if not math.isfinite(probability) or probability < 0.0:
        raise MalformedLineError(
            f"expected a finite non-negative probability, got {tokens[3]!r}",
            path,
            line_no,
        )
    return node_1, action, node_2, probability


def _parse_int(token: str, path: Path, line_no: int) -> int:
    try:
        return int(token)
    except ValueError as exc:
        raise MalformedLineError(f"expected an integer, got {token!r}", path, line_no) from exc


def _parse_float(token: str, path: Path, line_no: int) -> float:
    try:
        value = float(token)
    except ValueError as exc:
        raise MalformedLineError(f"expected a number, got {token!r}", path, line_no) from exc
    if not math.isfinite(value):
        raise MalformedLineError(f"expected a finite number, got {token!r}", path, line_no)
    return value
