"""Repository layout drift checks."""

from __future__ import annotations

from pathlib import Path

import pytest

IGNORED_FILES = {"__init__.py"}


def _project_root() -> Path:
    # tests/meta/test_structure.py -> project root
    return Path(__file__).resolve().parents[2]


def _undocumented(folder: Path, spec_content: str) -> list[str]:
    root = _project_root()
    return [
        path.relative_to(root).as_posix()
        for path in sorted(folder.rglob("*.py"))
        if path.name not in IGNORED_FILES and path.name not in spec_content
    ]


def test_source_and_script_files_are_documented() -> None:
    """Every module under src/ and scripts/ is listed in specs/repo_structure.md."""
    root = _project_root()
    specs_path = root / "specs" / "repo_structure.md"
    if not specs_path.exists():
        pytest.fail(f"Structure document missing: {specs_path} not found.")

    spec_content = specs_path.read_text(encoding="utf-8")
    undocumented = _undocumented(root / "src", spec_content)
    undocumented += _undocumented(root / "scripts", spec_content)

    if undocumented:
        pytest.fail(
            f"\n\n[Documentation Drift Detected]\n"
            f"Files missing from '{specs_path.name}':\n"
            f"{'-' * 60}\n"
            + "\n".join(f"- {name}" for name in undocumented)
            + f"\n{'-' * 60}\n"
        )


def test_model_packages_keep_namespace_layout() -> None:
    src = _project_root() / "src" / "reco_engine"
    assert not (src / "__init__.py").exists()
    assert (src / "model" / "__init__.py").exists()
