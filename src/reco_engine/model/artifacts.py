"""Serialization and export helpers for model tables."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from reco_engine.core.config import ModelConfig
from reco_engine.model.loader import ModelTables


def write_json(path: Path, payload: Any) -> None:
    """Write JSON with stable formatting."""
    path.write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n", encoding="utf-8")


def write_model_files(base: Path, tables: ModelTables) -> ModelConfig:
    """Write ``<base>.summary``, ``<base>.rewards`` and ``<base>.transitions``.

    Each profile lists its ``N * K * K`` entries over the connected children of
    every node, and is closed by a blank line.
    """
    config = ModelConfig.from_base_name(
        Path(base), environments_enabled=tables.environments_enabled
    )
    config.summary_path.parent.mkdir(parents=True, exist_ok=True)
    summary = tables.summary
    history = tables.history

    config.summary_path.write_text(
        f"{summary.n_nodes}\n{summary.n_actions}\n"
        f"{summary.n_environments}\n{summary.history_length}\n",
        encoding="utf-8",
    )
    config.rewards_path.write_text(
        "".join(
            f"{item + 1} {float(value)!r}\n" for item, value in enumerate(tables.rewards)
        ),
        encoding="utf-8",
    )
    with config.transitions_path.open("w", encoding="utf-8") as fh:
        for profile in range(tables.n_profiles):
            for node in range(summary.n_nodes):
                children = history.children(node)
                for action in range(summary.n_actions):
                    row = tables.transitions[profile, node, action]
                    for link, child in enumerate(children):
                        fh.write(f"{node} {action + 1} {child} {float(row[link])!r}\n")
            fh.write("\n")
    return config


def transition_frame(tables: ModelTables, include_zero: bool = False) -> pd.DataFrame:
    """Long-form table of transition entries, one row per (profile, node, action, link).

    ``action`` and ``link`` are 0-indexed items, matching ``window``.
    """
    history = tables.history
    mask = np.ones_like(tables.transitions, dtype=bool)
    if not include_zero:
        mask = tables.transitions > 0.0
    profiles, nodes, actions, links = np.nonzero(mask)

    windows = {node: history.id_to_state(node) for node in set(nodes.tolist())}
    next_nodes = [
        history.next_state(int(node), int(link)) for node, link in zip(nodes, links)
    ]
    accepted = actions == links
    return pd.DataFrame(
        {
            "profile": profiles,
            "node": nodes,
            "window": [",".join(str(item) for item in windows[int(node)]) for node in nodes],
            "action": actions,
            "link": links,
            "next_node": np.asarray(next_nodes, dtype=np.int64),
            "probability": tables.transitions[profiles, nodes, actions, links],
            "reward": np.where(accepted, tables.rewards[links], 0.0),
        }
    )


def rewards_frame(tables: ModelTables) -> pd.DataFrame:
    """Reward per item, with 1-indexed item ids as in the rewards file."""
    return pd.DataFrame(
        {
            "item": np.arange(1, tables.summary.n_actions + 1),
            "reward": tables.rewards,
        }
    )
