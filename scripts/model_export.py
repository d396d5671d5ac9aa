"""Export a recommendation model's tables to CSV for inspection."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from reco_engine.core.config import ModelConfig, load_model_config
from reco_engine.model.artifacts import rewards_frame, transition_frame
from reco_engine.model.recomodel import Recomodel


def main() -> int:
    parser = argparse.ArgumentParser(description="Export model tables to CSV.")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--config", type=Path, help="Path to model config YAML.")
    source.add_argument(
        "--base-name",
        type=Path,
        help="Model files prefix: <base>.summary, <base>.rewards, <base>.transitions.",
    )
    parser.add_argument("--output-dir", type=Path, required=True)
    parser.add_argument(
        "--mdp",
        action="store_true",
        help="Disable environments and merge all profiles into a plain MDP.",
    )
    parser.add_argument(
        "--include-zero",
        action="store_true",
        help="Also export zero-probability entries.",
    )
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    model = Recomodel.from_config(_resolve_config(args))

    args.output_dir.mkdir(parents=True, exist_ok=True)
    transitions = transition_frame(model.tables, include_zero=args.include_zero)
    transitions.to_csv(args.output_dir / "transitions.csv", index=False)
    rewards_frame(model.tables).to_csv(args.output_dir / "rewards.csv", index=False)

    print(f"Exported {len(transitions)} transition entries to {args.output_dir}.")
    accepted = transitions[transitions["action"] == transitions["link"]]
    by_profile = accepted.groupby("profile")["probability"].mean()
    for profile, mass in by_profile.items():
        print(f"Profile {profile}: mean acceptance probability {mass:.3f}")
    return 0


def _resolve_config(args: argparse.Namespace) -> ModelConfig:
    if args.config is not None:
        config = load_model_config(args.config)
        if args.mdp:
            return ModelConfig.from_dict({**config.to_dict(), "environments_enabled": False})
        return config
    return ModelConfig.from_base_name(args.base_name, environments_enabled=not args.mdp)


if __name__ == "__main__":
    raise SystemExit(main())
