"""Base classes for analyzers."""

from abc import ABC, abstractmethod
from typing import Generic, List, TypeVar

from ..models import ProjectManifest

T = TypeVar("T")


class Analyzer(ABC, Generic[T]):
    """Contract for analyzers that extract entities from the project manifest."""

    @abstractmethod
    def supports(self, manifest: ProjectManifest) -> bool:
        """Return True when this analyzer has files to inspect."""

    @abstractmethod
    def analyze(self, manifest: ProjectManifest) -> List[T]:
        """Produce the entities found in the manifest's source files."""
