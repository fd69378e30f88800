"""Clases base para fuentes de reportes de evaluación."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from progress_tool.model import EvaluationReport


@dataclass(frozen=True)
class SourcePaths:
    """Container for source directories."""

    root: Path


class DataSource(ABC):
    """Abstract source of evaluation histories."""

    def __init__(self, paths: SourcePaths) -> None:
        """Create a data source.

        Args:
            paths: Source paths configuration.
        """
        self._paths = paths

    def validate(self) -> None:
        """Validate that the source root exists.

        Raises:
            FileNotFoundError: If the root directory is missing.
        """
        if not self._paths.root.exists():
            raise FileNotFoundError(str(self._paths.root))

    @abstractmethod
    def load_history(self, path: Path) -> list[EvaluationReport]:
        """Load the reports stored at ``path``, oldest first."""
