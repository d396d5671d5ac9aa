"""Load a recommendation model and run its quality checks."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from reco_engine.core.config import ModelConfig, load_model_config
from reco_engine.model.artifacts import write_json
from reco_engine.model.quality_checks import run_model_checks
from reco_engine.model.recomodel import Recomodel


def main() -> int:
    parser = argparse.ArgumentParser(description="Validate recommendation model files.")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--config", type=Path, help="Path to model config YAML.")
    source.add_argument(
        "--base-name",
        type=Path,
        help="Model files prefix: <base>.summary, <base>.rewards, <base>.transitions.",
    )
    parser.add_argument(
        "--mdp",
        action="store_true",
        help="Disable environments and merge all profiles into a plain MDP.",
    )
    parser.add_argument(
        "--precise",
        action="store_true",
        help="Normalize rows with compensated (Kahan) summation.",
    )
    parser.add_argument(
        "--report",
        type=Path,
        default=None,
        help="Output path for quality_report.json.",
    )
    parser.add_argument(
        "--strict-conceptual",
        action="store_true",
        help="Fail on conceptual warnings in addition to hard checks.",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable tqdm progress bar while parsing transitions.",
    )
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    config = _resolve_config(args)
    model = Recomodel.from_config(config)
    quality = run_model_checks(model, strict_conceptual=args.strict_conceptual)

    report_path = args.report or config.transitions_path.with_name("quality_report.json")
    report_path.parent.mkdir(parents=True, exist_ok=True)
    payload = quality.to_dict()
    payload["model"] = {
        "n_observations": model.n_observations,
        "n_actions": model.n_actions,
        "n_environments": model.n_environments,
        "n_states": model.n_states,
        "history_length": model.history_length,
        "mdp_enabled": model.mdp_enabled,
    }
    write_json(report_path, payload)

    print(f"Report: {report_path}")
    print(f"Hard failures: {len(quality.hard_failures)}")
    print(f"Conceptual warnings: {len(quality.conceptual_warnings)}")
    if quality.conceptual_warnings:
        print(
            "Conceptual warnings: "
            + ", ".join(warning.name for warning in quality.conceptual_warnings)
        )

    if not quality.passed:
        print("Validation failed; see quality_report.json.")
        return 1
    return 0


def _resolve_config(args: argparse.Namespace) -> ModelConfig:
    if args.config is not None:
        config = load_model_config(args.config)
        overrides = {}
        if args.mdp:
            overrides["environments_enabled"] = False
        if args.precise:
            overrides["precise_normalization"] = True
        if args.no_progress:
            overrides["show_progress"] = False
        return ModelConfig.from_dict({**config.to_dict(), **overrides})
    return ModelConfig.from_base_name(
        args.base_name,
        environments_enabled=not args.mdp,
        precise_normalization=args.precise,
        show_progress=not args.no_progress,
    )


if __name__ == "__main__":
    raise SystemExit(main())
