"""
Module Descriptor Internal Representation

Models the module-level metadata enforced by the downstream compiler/linker:
exported packages, required modules, service uses and merged archives.
"""
from typing import List, Optional
from enum import Enum

from pydantic import BaseModel, Field

from modpatch.core.coordinates import ArtifactCoordinate


PLATFORM_MODULE_PREFIXES = ("java.", "jdk.")


class RequiresQualifier(str, Enum):
    """Qualifier of a requires entry"""
    NONE = "none"
    STATIC = "static"
    TRANSITIVE = "transitive"


class RequiresEntry(BaseModel):
    """Required module with an optional qualifier"""
    module: str = Field(..., description="Required module name (e.g., 'java.logging')")
    qualifier: RequiresQualifier = Field(default=RequiresQualifier.NONE, description="none, static or transitive")


class ModuleDescriptor(BaseModel):
    """
    Module descriptor

    Collections are kept as sorted, duplicate-free lists so a descriptor
    serializes identically for identical input.
    """
    name: str = Field(..., description="Module name, unique within the graph")
    exports: List[str] = Field(default_factory=list, description="Exported package names")
    opens: List[str] = Field(default_factory=list, description="Packages opened for deep reflection")
    requires: List[RequiresEntry] = Field(default_factory=list, description="Required modules")
    uses: List[str] = Field(default_factory=list, description="Service interfaces consumed via ServiceLoader")
    merged_jars: List[ArtifactCoordinate] = Field(default_factory=list, description="Artifacts folded into this module")

    def add_exports(self, packages) -> None:
        self.exports = sorted(set(self.exports) | set(packages))

    def add_opens(self, packages) -> None:
        self.opens = sorted(set(self.opens) | set(packages))

    def add_uses(self, service: str) -> None:
        self.uses = sorted(set(self.uses) | {service})

    def find_requires(self, module: str) -> Optional[RequiresEntry]:
        for entry in self.requires:
            if entry.module == module:
                return entry
        return None

    def add_requires(self, module: str, qualifier: RequiresQualifier = RequiresQualifier.NONE,
                     replace: bool = True) -> None:
        """
        Add a requires entry

        Args:
            module: Required module name
            qualifier: Requires qualifier
            replace: Whether an existing entry for the same module takes the new qualifier
        """
        existing = self.find_requires(module)
        if existing is not None:
            if replace:
                existing.qualifier = qualifier
            return
        self.requires.append(RequiresEntry(module=module, qualifier=qualifier))
        self.requires.sort(key=lambda entry: entry.module)

    def add_merged_jar(self, coordinate: ArtifactCoordinate) -> None:
        if coordinate not in self.merged_jars:
            self.merged_jars.append(coordinate)
            self.merged_jars.sort(key=str)

    def required_module_names(self) -> List[str]:
        return [entry.module for entry in self.requires]

    class Config:
        json_schema_extra = {
            "example": {
                "name": "com.google.common",
                "exports": ["com.google.common.base", "com.google.common.collect"],
                "opens": [],
                "requires": [
                    {"module": "java.logging", "qualifier": "none"},
                    {"module": "com.google.common.util.concurrent.internal", "qualifier": "transitive"}
                ],
                "uses": [],
                "merged_jars": []
            }
        }


def is_platform_module(module: str) -> bool:
    """Whether a module name belongs to the runtime platform (java.*, jdk.*)"""
    return module.startswith(PLATFORM_MODULE_PREFIXES)
