"""Append-only archive of runs, one JSON file per run."""

import json
import logging
from pathlib import Path
from typing import Iterator, Optional

from pydantic import ValidationError

from webqa.analytics.models import TestRun
from webqa.analytics.parser import parse_timestamp
from webqa.analytics.schema import StoredRun

logger = logging.getLogger(__name__)


class ResultStore:
    """Reads and writes archived runs under a results directory."""

    def __init__(self, results_dir: Path | str):
        """Initialize the store.

        The directory is created lazily on the first write.
        """
        self.results_dir = Path(results_dir)

    def path_for(self, run_id: str) -> Path:
        return self.results_dir / f"{run_id}.json"

    def store_results(self, run: TestRun) -> Path:
        """Write a run as pretty-printed JSON.

        Returns:
            Path of the written file

        Raises:
            OSError: If the directory or file cannot be written
        """
        self.results_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(run.id)
        path.write_text(json.dumps(run.to_dict(), indent=2), encoding="utf-8")
        logger.info(f"Test results stored: {path}")
        return path

    def iter_runs(self) -> Iterator[TestRun]:
        """Yield every readable run in the archive.

        Files that cannot be read or decoded are logged and skipped.
        Enumeration order is not chronological.
        """
        if not self.results_dir.is_dir():
            return

        for path in sorted(self.results_dir.glob("*.json")):
            run = self._load(path)
            if run is not None:
                yield run

    def load_runs(self) -> list[TestRun]:
        return list(self.iter_runs())

    def get_run(self, run_id: str) -> Optional[TestRun]:
        """Load a single run by id."""
        path = self.path_for(run_id)
        if not path.exists():
            return None
        return self._load(path)

    def get_recent_runs(self, limit: int = 10) -> list[TestRun]:
        """Return the newest runs first."""
        runs = []
        for run in self.iter_runs():
            try:
                runs.append((parse_timestamp(run.timestamp), run))
            except ValueError:
                logger.warning(f"Run {run.id} has an invalid timestamp: {run.timestamp}")
        runs.sort(key=lambda item: item[0], reverse=True)
        return [run for _, run in runs[:limit]]

    def _load(self, path: Path) -> Optional[TestRun]:
        try:
            stored = StoredRun.model_validate_json(path.read_bytes())
        except OSError as e:
            logger.warning(f"Failed to read results file: {path.name} ({e})")
            return None
        except ValidationError as e:
            logger.warning(f"Failed to parse results file: {path.name} ({e.error_count()} errors)")
            return None
        return TestRun.from_dict(stored.model_dump(by_alias=True))
