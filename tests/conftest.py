"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import sys


def _preload_numpy_without_macos_check() -> None:
    """Preload NumPy while bypassing the macOS sanity check.

    This avoids a hard crash seen with some macOS BLAS/LAPACK builds during
    NumPy's import-time polyfit check.
    """
    if sys.platform != "darwin":
        return

    original_platform = sys.platform
    try:
        sys.platform = "linux"
        import numpy  # noqa: F401
    finally:
        sys.platform = original_platform


_preload_numpy_without_macos_check()


from pathlib import Path
from typing import Callable

import pytest

from reco_engine.model.recomodel import Recomodel

# K=2, H=2: node -> children by link. Windows: 0=(), 1=(0,), 2=(1,),
# 3=(0,0), 4=(0,1), 5=(1,0), 6=(1,1).
SCENARIO_CHILDREN: dict[int, tuple[int, int]] = {
    0: (1, 2),
    1: (3, 4),
    2: (5, 6),
    3: (3, 4),
    4: (5, 6),
    5: (3, 4),
    6: (5, 6),
}
SCENARIO_SUMMARY = "7\n2\n1\n2\n"
SCENARIO_REWARDS = "1 1.0\n2 0.5\n"


def _scenario_profile_lines() -> list[str]:
    """28 lines; each (node, action) accepts the recommended item with probability 1."""
    lines: list[str] = []
    for node, children in SCENARIO_CHILDREN.items():
        for action in (1, 2):
            for link, child in enumerate(children):
                probability = 1.0 if link == action - 1 else 0.0
                lines.append(f"{node} {action} {child} {probability}")
    return lines


@pytest.fixture
def scenario_lines() -> list[str]:
    return _scenario_profile_lines()


@pytest.fixture
def write_model(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing model files under ``tmp_path`` and returning their base name."""

    def _write(
        name: str = "toy",
        *,
        summary: str | None = SCENARIO_SUMMARY,
        rewards: str | None = SCENARIO_REWARDS,
        transitions: str | None = None,
    ) -> Path:
        if transitions is None:
            transitions = "\n".join(_scenario_profile_lines()) + "\n\n"
        base = tmp_path / name
        for suffix, content in (
            (".summary", summary),
            (".rewards", rewards),
            (".transitions", transitions),
        ):
            if content is not None:
                (tmp_path / f"{name}{suffix}").write_text(content, encoding="utf-8")
        return base

    return _write


@pytest.fixture
def scenario_base(write_model: Callable[..., Path]) -> Path:
    return write_model()


@pytest.fixture
def scenario_model(scenario_base: Path) -> Recomodel:
    return Recomodel.from_files(
        scenario_base.with_suffix(".summary"),
        scenario_base.with_suffix(".rewards"),
        scenario_base.with_suffix(".transitions"),
        seed=0,
    )
