"""
Artifact Catalog
Read-only in-memory view of the resolver output

The catalog is built once per pipeline invocation and never mutated
afterwards. Every read hands out a deep copy so downstream stages can
work on their own copies.
"""
import logging
from typing import Dict, Iterable, List, Optional

from modpatch.core.coordinates import ArtifactCoordinate, CoordinatePattern
from .models import Artifact
from modpatch.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


class ArtifactCatalog:
    """
    Immutable artifact catalog

    Maps every ArtifactCoordinate to exactly one Artifact.
    """

    def __init__(self, artifacts: Iterable[Artifact]):
        """
        Initialize catalog

        Args:
            artifacts: Resolved artifacts (coordinates must be unique)

        Raises:
            ConfigurationError: If a coordinate appears twice
        """
        self._artifacts: Dict[ArtifactCoordinate, Artifact] = {}
        for artifact in artifacts:
            if artifact.coordinate in self._artifacts:
                raise ConfigurationError(f"Duplicate artifact coordinate in catalog: {artifact.coordinate}")
            self._artifacts[artifact.coordinate] = artifact.model_copy(deep=True)
        logger.debug(f"Artifact catalog created with {len(self._artifacts)} artifact(s)")

    def __len__(self) -> int:
        return len(self._artifacts)

    def __contains__(self, coordinate: ArtifactCoordinate) -> bool:
        return coordinate in self._artifacts

    def read(self, coordinate: ArtifactCoordinate) -> Optional[Artifact]:
        """
        Read an artifact

        Args:
            coordinate: Artifact coordinate

        Returns:
            Copy of the artifact or None if not in the catalog
        """
        artifact = self._artifacts.get(coordinate)
        if artifact is None:
            return None
        return artifact.model_copy(deep=True)

    def coordinates(self) -> List[ArtifactCoordinate]:
        """All coordinates, in deterministic (string) order"""
        return sorted(self._artifacts, key=str)

    def list_artifacts(self) -> List[Artifact]:
        """Copies of all artifacts, in coordinate order"""
        return [self._artifacts[c].model_copy(deep=True) for c in self.coordinates()]

    def find(self, pattern: CoordinatePattern) -> List[ArtifactCoordinate]:
        """
        Find coordinates matching a pattern

        Args:
            pattern: 'group:name' or 'group:name:version' pattern

        Returns:
            Matching coordinates in deterministic order
        """
        return [c for c in self.coordinates() if pattern.matches(c)]
