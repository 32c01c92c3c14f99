"""Git integration for run metadata."""

from webqa.git.metadata import GitMetadata, RunMetadata, resolve_run_metadata

__all__ = ["GitMetadata", "RunMetadata", "resolve_run_metadata"]
