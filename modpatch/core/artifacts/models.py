"""
Artifact models

Resolved third-party artifacts as handed over by the external resolver.
"""
from typing import List, Optional
from enum import Enum

from pydantic import BaseModel, Field

from modpatch.core.coordinates import ArtifactCoordinate
from modpatch.core.ir.descriptor import ModuleDescriptor


class DependencyScope(str, Enum):
    """Scope of a declared dependency edge"""
    API = "api"
    IMPLEMENTATION = "implementation"
    RUNTIME = "runtime"
    COMPILE_ONLY = "compileOnly"


class DependencyEdge(BaseModel):
    """Declared dependency from one artifact to another"""
    target: ArtifactCoordinate = Field(..., description="Target artifact coordinate")
    scope: DependencyScope = Field(default=DependencyScope.IMPLEMENTATION, description="Dependency scope")


class Artifact(BaseModel):
    """
    Resolved artifact

    An artifact without a native descriptor is an automatic module: its
    module name is inferred by convention instead of being declared.
    """
    coordinate: ArtifactCoordinate = Field(..., description="Unique artifact identity")
    descriptor: Optional[ModuleDescriptor] = Field(None, description="Native module descriptor (None = automatic module)")
    dependencies: List[DependencyEdge] = Field(default_factory=list, description="Declared dependency edges, in declaration order")
    path: Optional[str] = Field(None, description="Physical archive path")
    automatic_module_name: Optional[str] = Field(None, description="Manifest-declared automatic module name")
    packages: Optional[List[str]] = Field(None, description="Packages contained in the archive, if known to the resolver")

    @property
    def is_automatic(self) -> bool:
        return self.descriptor is None

    def dependency_targets(self) -> List[ArtifactCoordinate]:
        return [edge.target for edge in self.dependencies]

    class Config:
        json_schema_extra = {
            "example": {
                "coordinate": {"group": "com.google.guava", "name": "guava", "version": "33.0.0-jre"},
                "descriptor": None,
                "dependencies": [
                    {
                        "target": {"group": "com.google.guava", "name": "failureaccess", "version": "1.0.2"},
                        "scope": "api"
                    }
                ],
                "path": "libs/guava-33.0.0-jre.jar",
                "automatic_module_name": "com.google.common",
                "packages": ["com.google.common.base", "com.google.common.collect"]
            }
        }
