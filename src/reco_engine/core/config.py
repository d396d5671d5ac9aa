"""Model configuration schema and YAML helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

SUMMARY_SUFFIX = ".summary"
REWARDS_SUFFIX = ".rewards"
TRANSITIONS_SUFFIX = ".transitions"


@dataclass(frozen=True)
class ModelConfig:
    """Where the model files live and how to build the model from them.

    Attributes:
        summary_path: Path to the ``.summary`` file.
        rewards_path: Path to the ``.rewards`` file.
        transitions_path: Path to the ``.transitions`` file.
        discount: Discount factor exposed to planners, in (0, 1].
        environments_enabled: ``False`` merges all profiles into a plain MDP.
        precise_normalization: Use compensated summation when normalizing rows.
        seed: Seed of the sampler's random generator.
        show_progress: Show a tqdm bar while parsing transitions.
        metadata: Free-form provenance information.
    """

    summary_path: Path
    rewards_path: Path
    transitions_path: Path
    discount: float = 0.95
    environments_enabled: bool = True
    precise_normalization: bool = False
    seed: int | None = None
    show_progress: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)

    def validate(self) -> None:
        if not (0.0 < self.discount <= 1.0):
            raise ValueError("discount must be in (0, 1].")
        if self.seed is not None and self.seed < 0:
            raise ValueError("seed must be non-negative.")

    @classmethod
    def from_base_name(cls, base: Path, **kwargs: Any) -> "ModelConfig":
        """Config for ``<base>.summary``, ``<base>.rewards``, ``<base>.transitions``."""
        base = Path(base)
        return cls(
            summary_path=base.with_name(base.name + SUMMARY_SUFFIX),
            rewards_path=base.with_name(base.name + REWARDS_SUFFIX),
            transitions_path=base.with_name(base.name + TRANSITIONS_SUFFIX),
            **kwargs,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert config to a plain YAML-friendly dict."""
        return {
            "summary_path": str(self.summary_path),
            "rewards_path": str(self.rewards_path),
            "transitions_path": str(self.transitions_path),
            "discount": self.discount,
            "environments_enabled": self.environments_enabled,
            "precise_normalization": self.precise_normalization,
            "seed": self.seed,
            "show_progress": self.show_progress,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any], root: Path | None = None) -> "ModelConfig":
        """Create config from a plain dict, resolving relative paths against ``root``."""
        if "base_name" in payload:
            base = _resolve(Path(payload["base_name"]), root)
            paths = cls.from_base_name(base)
            summary_path = paths.summary_path
            rewards_path = paths.rewards_path
            transitions_path = paths.transitions_path
        else:
            missing = [
                key
                for key in ("summary_path", "rewards_path", "transitions_path")
                if key not in payload
            ]
            if missing:
                raise ValueError(f"Model config missing keys: {', '.join(missing)}")
            summary_path = _resolve(Path(payload["summary_path"]), root)
            rewards_path = _resolve(Path(payload["rewards_path"]), root)
            transitions_path = _resolve(Path(payload["transitions_path"]), root)

        seed = payload.get("seed")
        config = cls(
            summary_path=summary_path,
            rewards_path=rewards_path,
            transitions_path=transitions_path,
            discount=float(payload.get("discount", 0.95)),
            environments_enabled=bool(payload.get("environments_enabled", True)),
            precise_normalization=bool(payload.get("precise_normalization", False)),
            seed=None if seed is None else int(seed),
            show_progress=bool(payload.get("show_progress", False)),
            metadata=dict(payload.get("metadata") or {}),
        )
        config.validate()
        return config


def save_model_config(config: ModelConfig, output_path: Path) -> None:
    """Serialize config to YAML."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(yaml.safe_dump(config.to_dict(), sort_keys=False))


def load_model_config(path: Path) -> ModelConfig:
    """Load config from YAML; relative file paths are taken from the YAML's folder."""
    if not path.exists():
        raise FileNotFoundError(f"Model config not found: {path}")
    payload = yaml.safe_load(path.read_text())
    if not isinstance(payload, dict):
        raise ValueError("Expected a mapping in model config YAML.")
    return ModelConfig.from_dict(payload, root=path.parent)


def _resolve(path: Path, root: Path | None) -> Path:
    if root is None or path.is_absolute():
        return path
    return root / path
