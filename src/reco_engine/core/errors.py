"""Load-time error taxonomy for model files.

Every error is fatal: a model is either fully loaded and validated or
construction fails. Missing files raise the builtin ``FileNotFoundError``.
"""

from __future__ import annotations

from pathlib import Path


class ModelLoadError(ValueError):
    """Base class for invalid model-file contents."""

    def __init__(self, message: str, path: Path | None = None, line_no: int | None = None):
        location = ""
        if path is not None:
            location = f"{path}"
            if line_no is not None:
                location += f":{line_no}"
            location += ": "
        super().__init__(f"{location}{message}")
        self.path = path
        self.line_no = line_no


class MalformedLineError(ModelLoadError):
    """A line has the wrong number of tokens or a token of the wrong type."""


class IndexOutOfRangeError(ModelLoadError):
    """An item, action, profile or state id lies outside its declared bounds."""


class RowCountMismatchError(ModelLoadError):
    """A transitions profile does not hold exactly N * K * K entries."""


class ProfileCountMismatchError(ModelLoadError):
    """The transitions file holds too many or too few profiles."""


class InconsistentSummaryError(ModelLoadError):
    """The declared node count does not match the action count and history length."""


class DisconnectedTransitionError(ModelLoadError):
    """A positive probability was given to a pair of unconnected nodes."""


class EmptyTransitionRowError(ModelLoadError):
    """A (profile, node, action) row has zero total mass and cannot be normalized."""


class IncompleteRewardsError(ModelLoadError):
    """The rewards file misses an item or lists one more than once."""
