"""Error types surfaced by the pipeline."""

from __future__ import annotations


class ConfigError(ValueError):
    """Configuration is missing or malformed."""


class SourceUnavailable(RuntimeError):
    """A dataset could not be downloaded from the spreadsheet export."""

    def __init__(self, dataset: str, reason: str) -> None:
        super().__init__(f"{dataset}: {reason}")
        self.dataset = dataset
        self.reason = reason
