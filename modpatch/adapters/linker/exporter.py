"""
Module Graph Exporter
Serializes a validated dependency graph into the form consumed by the
downstream compiler/linker and packaging tooling

Emission is a pure transform of the frozen graph. Any inconsistency found
here means an earlier stage let a broken graph through, so it raises
ModuleGraphDefect instead of reporting a user-facing violation.
"""
import logging
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, Field

from modpatch.core.errors import ModuleGraphDefect
from modpatch.core.ir.descriptor import RequiresEntry
from modpatch.core.ir.graph import DependencyGraph

logger = logging.getLogger(__name__)


class EmittedModule(BaseModel):
    """One independently emitted module"""
    name: str = Field(..., description="Module name")
    coordinate: str = Field(..., description="Backing artifact coordinate ('group:name:version')")
    automatic: bool = Field(default=False, description="True if the module has no real or synthesized descriptor")
    exports: List[str] = Field(default_factory=list, description="Exported packages")
    opens: List[str] = Field(default_factory=list, description="Opened packages")
    requires: List[RequiresEntry] = Field(default_factory=list, description="Required modules with qualifiers")
    uses: List[str] = Field(default_factory=list, description="Service uses declarations")
    merged_jars: List[str] = Field(default_factory=list, description="Coordinates of the artifacts folded into this module")
    artifact_paths: List[str] = Field(default_factory=list, description="Physical archives making up the module")


class ModuleGraph(BaseModel):
    """Validated module graph, modules sorted by name"""
    modules: List[EmittedModule] = Field(default_factory=list)

    def module(self, name: str) -> Optional[EmittedModule]:
        for module in self.modules:
            if module.name == name:
                return module
        return None

    def module_names(self) -> List[str]:
        return [module.name for module in self.modules]

    class Config:
        json_schema_extra = {
            "example": {
                "modules": [
                    {
                        "name": "com.google.common",
                        "coordinate": "com.google.guava:guava:33.0.0-jre",
                        "automatic": False,
                        "exports": ["com.google.common.base", "com.google.common.collect"],
                        "opens": [],
                        "requires": [{"module": "java.logging", "qualifier": "none"}],
                        "uses": [],
                        "merged_jars": [],
                        "artifact_paths": ["libs/guava-33.0.0-jre.jar"]
                    }
                ]
            }
        }


class ModuleGraphExporter:
    """
    Export a validated dependency graph
    """

    def emit(self, graph: DependencyGraph) -> ModuleGraph:
        """
        Build the downstream module graph

        Args:
            graph: Frozen, validated dependency graph

        Returns:
            ModuleGraph with every collection sorted

        Raises:
            ModuleGraphDefect: If the graph was not frozen or breaks a
                validated invariant
        """
        if not graph.frozen:
            raise ModuleGraphDefect("Only a frozen (validated) dependency graph can be emitted")

        modules = []
        for coordinate in graph.emitted_coordinates():
            descriptor = graph.module_descriptor(coordinate)
            merged = graph.merged_sources(coordinate)

            paths = []
            for source in [coordinate] + merged:
                path = graph.artifact(source).path
                if path and path not in paths:
                    paths.append(path)

            modules.append(EmittedModule(
                name=descriptor.name,
                coordinate=str(coordinate),
                automatic=graph.is_automatic(coordinate),
                exports=sorted(set(descriptor.exports)),
                opens=sorted(set(descriptor.opens)),
                requires=sorted(
                    (entry.model_copy() for entry in descriptor.requires),
                    key=lambda entry: entry.module
                ),
                uses=sorted(set(descriptor.uses)),
                merged_jars=sorted({str(c) for c in merged} | {str(c) for c in descriptor.merged_jars}),
                artifact_paths=paths
            ))

        modules.sort(key=lambda m: m.name)
        self._check(modules)
        logger.info(f"Emitted module graph with {len(modules)} module(s)")
        return ModuleGraph(modules=modules)

    def _check(self, modules: List[EmittedModule]) -> None:
        names = [m.name for m in modules]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ModuleGraphDefect(f"Emitting duplicate module name(s): {', '.join(duplicates)}")

        emitted_coordinates = {m.coordinate for m in modules}
        for module in modules:
            leaked = emitted_coordinates.intersection(module.merged_jars)
            if leaked:
                raise ModuleGraphDefect(
                    f"Module '{module.name}' merges {', '.join(sorted(leaked))} which is also emitted on its own"
                )

    def to_json(self, module_graph: ModuleGraph) -> str:
        """Serialize deterministically (identical input gives identical bytes)"""
        return module_graph.model_dump_json(indent=2)

    def export(self, graph: DependencyGraph, output_path: Union[str, Path]) -> Path:
        """
        Emit the graph and write it as JSON

        Args:
            graph: Frozen, validated dependency graph
            output_path: Output file path

        Returns:
            Path of the written file
        """
        module_graph = self.emit(graph)

        output_file = Path(output_path)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        with open(output_file, 'w', encoding='utf-8') as f:
            f.write(self.to_json(module_graph))

        logger.info(f"Module graph written to {output_file}")
        return output_file
