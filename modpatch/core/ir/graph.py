"""
Dependency Graph
Working copy of the artifact catalog that the pipeline mutates in place

Module names are never stored here: module_name() derives them from the
current descriptors, merges and naming rule each time it is called, so
they stay correct whenever a stage renames or merges a module.
"""
import logging
from typing import Dict, List, Optional, Set

from modpatch.core.coordinates import ArtifactCoordinate, CoordinatePattern
from modpatch.core.artifacts.models import Artifact, DependencyEdge, DependencyScope
from .descriptor import ModuleDescriptor, RequiresEntry
from .naming import derive_module_name

logger = logging.getLogger(__name__)


class DependencyGraph:
    """
    Mutable dependency graph for one pipeline invocation

    Built by copying the catalog, mutated by the synthesizer and the
    patcher, then frozen for validation and emission.
    """

    def __init__(self, artifacts: List[Artifact]):
        self._artifacts: Dict[ArtifactCoordinate, Artifact] = {
            a.coordinate: a.model_copy(deep=True) for a in artifacts
        }
        self._synthesized: Dict[ArtifactCoordinate, ModuleDescriptor] = {}
        self._merged_into: Dict[ArtifactCoordinate, ArtifactCoordinate] = {}
        self._packages: Dict[ArtifactCoordinate, List[str]] = {}
        self._exempt: Set[ArtifactCoordinate] = set()
        self._frozen = False

    @classmethod
    def from_catalog(cls, catalog) -> 'DependencyGraph':
        """Create a working graph from an ArtifactCatalog"""
        return cls(catalog.list_artifacts())

    # --- Lookup ---------------------------------------------------------

    def __contains__(self, coordinate: ArtifactCoordinate) -> bool:
        return coordinate in self._artifacts

    def coordinates(self) -> List[ArtifactCoordinate]:
        return sorted(self._artifacts, key=str)

    def artifact(self, coordinate: ArtifactCoordinate) -> Artifact:
        return self._artifacts[coordinate]

    def find(self, pattern: CoordinatePattern) -> List[ArtifactCoordinate]:
        return [c for c in self.coordinates() if pattern.matches(c)]

    def resolve(self, pattern: CoordinatePattern) -> Optional[ArtifactCoordinate]:
        """
        Resolve a directive pattern to one coordinate

        A version-less pattern resolves to the highest-sorting matching
        version when the graph holds several.
        """
        matches = self.find(pattern)
        if not matches:
            return None
        if len(matches) > 1:
            logger.warning(f"'{pattern}' matches {len(matches)} artifacts, using {matches[-1]}")
        return matches[-1]

    def edges(self, coordinate: ArtifactCoordinate) -> List[DependencyEdge]:
        return list(self._artifacts[coordinate].dependencies)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        self._frozen = True

    def _check_mutable(self) -> None:
        if self._frozen:
            raise RuntimeError("Dependency graph is frozen")

    # --- Edge mutation --------------------------------------------------

    def remove_edges(self, coordinate: ArtifactCoordinate, pattern: CoordinatePattern) -> int:
        """
        Remove edges whose target matches a pattern

        Returns:
            Number of edges removed (0 when none matched)
        """
        self._check_mutable()
        artifact = self._artifacts[coordinate]
        kept = [e for e in artifact.dependencies if not pattern.matches(e.target)]
        removed = len(artifact.dependencies) - len(kept)
        artifact.dependencies = kept
        return removed

    def add_edge(self, coordinate: ArtifactCoordinate, target: ArtifactCoordinate,
                 scope: DependencyScope = DependencyScope.IMPLEMENTATION,
                 replace_scope: bool = True) -> bool:
        """
        Add an edge; an existing edge to the same target takes the new scope
        unless replace_scope is False

        Returns:
            True if a new edge was added
        """
        self._check_mutable()
        artifact = self._artifacts[coordinate]
        for edge in artifact.dependencies:
            if edge.target == target:
                if replace_scope:
                    edge.scope = scope
                return False
        artifact.dependencies.append(DependencyEdge(target=target, scope=scope))
        return True

    # --- Descriptors ----------------------------------------------------

    def set_synthesized(self, coordinate: ArtifactCoordinate, descriptor: ModuleDescriptor) -> None:
        self._check_mutable()
        self._synthesized[coordinate] = descriptor

    def synthesized(self, coordinate: ArtifactCoordinate) -> Optional[ModuleDescriptor]:
        return self._synthesized.get(coordinate)

    def effective_descriptor(self, coordinate: ArtifactCoordinate) -> Optional[ModuleDescriptor]:
        """Synthesized descriptor if any, else the native one, else None (automatic module)"""
        synthesized = self._synthesized.get(coordinate)
        if synthesized is not None:
            return synthesized
        return self._artifacts[coordinate].descriptor

    def is_automatic(self, coordinate: ArtifactCoordinate) -> bool:
        return self.effective_descriptor(coordinate) is None

    def module_name(self, coordinate: ArtifactCoordinate) -> str:
        """Current module name of a coordinate (merged artifacts resolve to their host)"""
        if coordinate not in self._artifacts:
            return derive_module_name(coordinate.group, coordinate.name)
        host = self.merge_host(coordinate)
        if host is not None:
            return self.module_name(host)
        descriptor = self.effective_descriptor(coordinate)
        if descriptor is not None:
            return descriptor.name
        artifact = self._artifacts[coordinate]
        return derive_module_name(artifact.coordinate.group, artifact.coordinate.name,
                                  artifact.automatic_module_name)

    # --- Packages -------------------------------------------------------

    def record_packages(self, coordinate: ArtifactCoordinate, packages) -> None:
        self._check_mutable()
        self._packages[coordinate] = sorted(set(packages))

    def scanned_packages(self, coordinate: ArtifactCoordinate) -> Optional[List[str]]:
        return self._packages.get(coordinate)

    def exported_packages(self, coordinate: ArtifactCoordinate) -> List[str]:
        """
        Packages a coordinate makes visible

        Descriptor exports when it has a descriptor; automatic modules
        export every package they contain (scanned, else resolver-supplied).
        """
        descriptor = self.effective_descriptor(coordinate)
        if descriptor is not None:
            return list(descriptor.exports)
        scanned = self._packages.get(coordinate)
        if scanned is not None:
            return list(scanned)
        return sorted(set(self._artifacts[coordinate].packages or []))

    # --- Merges ---------------------------------------------------------

    def merge(self, source: ArtifactCoordinate, host: ArtifactCoordinate) -> None:
        self._check_mutable()
        self._merged_into[source] = host

    def merge_host(self, coordinate: ArtifactCoordinate) -> Optional[ArtifactCoordinate]:
        return self._merged_into.get(coordinate)

    def is_merged(self, coordinate: ArtifactCoordinate) -> bool:
        return coordinate in self._merged_into

    def emitted_coordinates(self) -> List[ArtifactCoordinate]:
        """Coordinates emitted as independent modules (merged sources excluded)"""
        return [c for c in self.coordinates() if c not in self._merged_into]

    def merged_sources(self, host: ArtifactCoordinate) -> List[ArtifactCoordinate]:
        return sorted((s for s, h in self._merged_into.items() if h == host), key=str)

    # --- Automatic modules ----------------------------------------------

    def exempt(self, coordinate: ArtifactCoordinate) -> None:
        self._check_mutable()
        self._exempt.add(coordinate)

    def is_exempt(self, coordinate: ArtifactCoordinate) -> bool:
        return coordinate in self._exempt

    def placeholder_descriptor(self, coordinate: ArtifactCoordinate) -> ModuleDescriptor:
        """
        Descriptor standing in for an automatic module

        Named by the deterministic naming rule, exporting all its packages
        and requiring the module of every retained edge.
        """
        own_name = self.module_name(coordinate)
        required = sorted({self.module_name(e.target) for e in self.edges(coordinate)} - {own_name})
        return ModuleDescriptor(
            name=own_name,
            exports=self.exported_packages(coordinate),
            requires=[RequiresEntry(module=name) for name in required],
        )

    def module_descriptor(self, coordinate: ArtifactCoordinate) -> ModuleDescriptor:
        """Effective descriptor, or the automatic-module placeholder"""
        descriptor = self.effective_descriptor(coordinate)
        if descriptor is not None:
            return descriptor
        return self.placeholder_descriptor(coordinate)
