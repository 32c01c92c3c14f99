"""Branch and commit metadata for archived runs."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from git import Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

logger = logging.getLogger(__name__)


@dataclass
class RunMetadata:
    """Where and against what code a run was executed."""

    environment: str = "development"
    branch: str = "main"
    commit: str = "unknown"

    def to_dict(self) -> dict:
        return {
            "environment": self.environment,
            "branch": self.branch,
            "commit": self.commit,
        }


class GitMetadata:
    """Reads the current branch and commit from a git repository."""

    def __init__(self, repo_path: Path | str):
        """Initialize with repository path."""
        self.repo_path = Path(repo_path)
        self._repo: Optional[Repo] = None

    @property
    def repo(self) -> Repo:
        """Get the git repository, initializing if needed."""
        if self._repo is None:
            try:
                self._repo = Repo(self.repo_path, search_parent_directories=True)
            except (InvalidGitRepositoryError, NoSuchPathError):
                raise ValueError(f"Not a git repository: {self.repo_path}")
        return self._repo

    def get_current_commit(self) -> Optional[str]:
        """Get the current commit hash."""
        try:
            return self.repo.head.commit.hexsha
        except (ValueError, GitCommandError):
            return None

    def get_current_branch(self) -> Optional[str]:
        """Get the current branch name, or None on a detached head."""
        try:
            return self.repo.active_branch.name
        except (TypeError, ValueError, GitCommandError):
            return None


def resolve_run_metadata(
    base_dir: Path | str | None = None,
    environ: Optional[Mapping[str, str]] = None,
) -> RunMetadata:
    """Resolve environment, branch and commit for a new run.

    CI variables win (``WEBQA_ENV``/``NODE_ENV``, ``GITHUB_REF``,
    ``GITHUB_SHA``), then the local git checkout, then fixed defaults.
    """
    environ = os.environ if environ is None else environ
    metadata = RunMetadata(
        environment=environ.get("WEBQA_ENV") or environ.get("NODE_ENV") or "development",
    )

    branch = environ.get("GITHUB_REF")
    commit = environ.get("GITHUB_SHA")

    if not (branch and commit):
        git = GitMetadata(base_dir or Path.cwd())
        try:
            branch = branch or git.get_current_branch()
            commit = commit or git.get_current_commit()
        except ValueError as e:
            logger.debug(f"Git metadata unavailable: {e}")

    metadata.branch = branch or metadata.branch
    metadata.commit = commit or metadata.commit
    return metadata
