"""
Resolver Importer
Maps the external resolver's JSON output to an ArtifactCatalog

Input format:
    {
      "artifacts": [
        {
          "coordinate": "com.google.guava:guava:33.0.0-jre",
          "dependencies": ["com.google.guava:failureaccess:1.0.2",
                           {"target": "org.jspecify:jspecify:1.0.0", "scope": "api"}],
          "descriptor": null,
          "path": "libs/guava-33.0.0-jre.jar",
          "automatic_module_name": "com.google.common",
          "packages": ["com.google.common.base"]
        }
      ]
    }

Coordinates may be given in 'group:name:version' notation or as objects.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError

from modpatch.adapters.archive.package_lister import read_jar_metadata
from modpatch.core.artifacts.catalog import ArtifactCatalog
from modpatch.core.artifacts.models import Artifact
from modpatch.core.coordinates import ArtifactCoordinate
from modpatch.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


class ResolverImporter:
    """Imports resolver output to an artifact catalog"""

    def __init__(self, base_path: Optional[str] = None, read_archives: bool = False):
        """
        Initialize importer

        Args:
            base_path: Directory relative artifact paths are resolved against
            read_archives: Fill in packages and Automatic-Module-Name from
                the archives when the resolver did not supply them
        """
        self.base_path = Path(base_path) if base_path else None
        self.read_archives = read_archives

    def import_catalog(self, data: Mapping[str, Any]) -> ArtifactCatalog:
        """
        Build a catalog from parsed resolver output

        Args:
            data: Mapping with an 'artifacts' list

        Returns:
            ArtifactCatalog

        Raises:
            ConfigurationError: If an entry is malformed or a coordinate is duplicated
        """
        entries = data.get("artifacts")
        if not isinstance(entries, list):
            raise ConfigurationError("Resolver output must contain an 'artifacts' list")

        artifacts = [self._convert_artifact(entry, index) for index, entry in enumerate(entries)]
        catalog = ArtifactCatalog(artifacts)
        logger.info(f"Imported {len(catalog)} artifact(s) from resolver output")
        return catalog

    def import_catalog_file(self, path: Union[str, Path]) -> ArtifactCatalog:
        """
        Build a catalog from a resolver JSON file

        Args:
            path: Path to the resolver output

        Returns:
            ArtifactCatalog
        """
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read resolver output '{path}': {e}") from e
        if self.base_path is None:
            self.base_path = Path(path).parent
        return self.import_catalog(data)

    def _convert_artifact(self, entry: Any, index: int) -> Artifact:
        """Convert one resolver entry to an Artifact"""
        if not isinstance(entry, dict):
            raise ConfigurationError(f"Artifact entry #{index} is not an object")

        data = dict(entry)
        try:
            data["coordinate"] = self._convert_coordinate(data.get("coordinate"))
            data["dependencies"] = self._convert_dependencies(data.get("dependencies") or [])
            artifact = Artifact.model_validate(data)
        except (TypeError, ValueError, ValidationError) as e:
            raise ConfigurationError(f"Invalid artifact entry #{index}: {e}") from e

        if self.read_archives and artifact.path:
            self._read_archive(artifact)
        return artifact

    def _convert_coordinate(self, value: Any) -> Any:
        if isinstance(value, str):
            return ArtifactCoordinate.parse(value)
        return value

    def _convert_dependencies(self, dependencies: List[Any]) -> List[Dict[str, Any]]:
        """Normalize edges and drop repeated targets (first declaration wins)"""
        edges = []
        seen = set()
        for dependency in dependencies:
            if isinstance(dependency, str):
                edge = {"target": ArtifactCoordinate.parse(dependency)}
            else:
                edge = dict(dependency)
                edge["target"] = self._convert_coordinate(edge.get("target"))
            target = edge["target"]
            key = str(target) if isinstance(target, ArtifactCoordinate) else json.dumps(target, sort_keys=True)
            if key in seen:
                logger.debug(f"Dropping repeated dependency on {key}")
                continue
            seen.add(key)
            edges.append(edge)
        return edges

    def _read_archive(self, artifact: Artifact) -> None:
        jar_path = Path(artifact.path)
        if not jar_path.is_absolute() and self.base_path is not None:
            jar_path = self.base_path / jar_path
        if not jar_path.exists():
            logger.warning(f"Archive {jar_path} for {artifact.coordinate} does not exist")
            return

        metadata = read_jar_metadata(str(jar_path))
        if artifact.packages is None:
            artifact.packages = sorted(metadata["packages"])
        if artifact.automatic_module_name is None:
            artifact.automatic_module_name = metadata["automatic_module_name"]
        if metadata["has_module_info"] and artifact.descriptor is None:
            logger.warning(
                f"{artifact.coordinate} contains module-info.class but the resolver supplied no descriptor"
            )
