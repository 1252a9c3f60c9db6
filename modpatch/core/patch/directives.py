"""
Patch Directives

Edge directives (applied by the graph patcher):
- RemoveDependency
- RemoveDependencyGroup (expanded into RemoveDependency at load time)
- AddDependency

Descriptor directives (consumed by the descriptor synthesizer):
- SetModuleName
- ExportAllPackages
- ExportPackage
- PatchRealModule
- RequireAllDefinedDependencies
- AutomaticModule

Structural directives (applied by the graph patcher after all edge directives):
- Requires
- Uses
- OpensPackage
- MergeJar
"""
from typing import Annotated, ClassVar, Literal, Union
from enum import IntEnum

from pydantic import BaseModel, Field, field_validator

from modpatch.core.coordinates import CoordinatePattern
from modpatch.core.artifacts.models import DependencyScope
from modpatch.core.ir.descriptor import RequiresQualifier


class DirectivePhase(IntEnum):
    """Application phase; lower phases run first across the whole graph"""
    DESCRIPTOR = 0
    EDGE_REMOVAL = 1
    EDGE_ADDITION = 2
    STRUCTURAL = 3


def _check_pattern(value: str) -> str:
    CoordinatePattern.parse(value)
    return value


class RemoveDependency(BaseModel):
    """
    RemoveDependency directive
    Drops every edge whose target matches the pattern (no-op when absent)
    """
    op: Literal["RemoveDependency"] = "RemoveDependency"
    target: str = Field(..., description="Target pattern 'group:name[:version]'")

    phase: ClassVar[DirectivePhase] = DirectivePhase.EDGE_REMOVAL

    @field_validator("target")
    @classmethod
    def check_target(cls, value: str) -> str:
        return _check_pattern(value)

    @property
    def pattern(self) -> CoordinatePattern:
        return CoordinatePattern.parse(self.target)

    def describe(self) -> str:
        return f"removeDependency({self.target})"


class RemoveDependencyGroup(BaseModel):
    """
    RemoveDependencyGroup directive
    Removes every member of a named dependency group
    """
    op: Literal["RemoveDependencyGroup"] = "RemoveDependencyGroup"
    group: str = Field(..., description="Name of a group declared in the rule set's dependency_groups")

    phase: ClassVar[DirectivePhase] = DirectivePhase.EDGE_REMOVAL

    def describe(self) -> str:
        return f"removeDependencyGroup({self.group})"


class AddDependency(BaseModel):
    """
    AddDependency directive
    Adds an edge to an artifact of the catalog
    """
    op: Literal["AddDependency"] = "AddDependency"
    target: str = Field(..., description="Target pattern 'group:name[:version]'")
    scope: DependencyScope = Field(default=DependencyScope.IMPLEMENTATION, description="Scope of the new edge")

    phase: ClassVar[DirectivePhase] = DirectivePhase.EDGE_ADDITION

    @field_validator("target")
    @classmethod
    def check_target(cls, value: str) -> str:
        return _check_pattern(value)

    @property
    def pattern(self) -> CoordinatePattern:
        return CoordinatePattern.parse(self.target)

    def describe(self) -> str:
        return f"addDependency({self.target}, {self.scope.value})"


class SetModuleName(BaseModel):
    """SetModuleName directive"""
    op: Literal["SetModuleName"] = "SetModuleName"
    name: str = Field(..., min_length=1, description="Module name to assign")

    phase: ClassVar[DirectivePhase] = DirectivePhase.DESCRIPTOR

    def describe(self) -> str:
        return f"setModuleName({self.name})"


class ExportAllPackages(BaseModel):
    """ExportAllPackages directive: export every package found in the archive"""
    op: Literal["ExportAllPackages"] = "ExportAllPackages"

    phase: ClassVar[DirectivePhase] = DirectivePhase.DESCRIPTOR

    def describe(self) -> str:
        return "exportAllPackages()"


class ExportPackage(BaseModel):
    """ExportPackage directive: explicit export list entry"""
    op: Literal["ExportPackage"] = "ExportPackage"
    package: str = Field(..., min_length=1, description="Package name")

    phase: ClassVar[DirectivePhase] = DirectivePhase.DESCRIPTOR

    def describe(self) -> str:
        return f"exports({self.package})"


class PatchRealModule(BaseModel):
    """
    PatchRealModule directive
    Allows a descriptor to be synthesized alongside an existing native one
    """
    op: Literal["PatchRealModule"] = "PatchRealModule"

    phase: ClassVar[DirectivePhase] = DirectivePhase.DESCRIPTOR

    def describe(self) -> str:
        return "patchRealModule()"


class RequireAllDefinedDependencies(BaseModel):
    """RequireAllDefinedDependencies directive: one requires entry per retained edge"""
    op: Literal["RequireAllDefinedDependencies"] = "RequireAllDefinedDependencies"

    phase: ClassVar[DirectivePhase] = DirectivePhase.DESCRIPTOR

    def describe(self) -> str:
        return "requireAllDefinedDependencies()"


class AutomaticModule(BaseModel):
    """AutomaticModule directive: keep the artifact automatic, exempt from the automatic-module policy"""
    op: Literal["AutomaticModule"] = "AutomaticModule"

    phase: ClassVar[DirectivePhase] = DirectivePhase.DESCRIPTOR

    def describe(self) -> str:
        return "automaticModule()"


class Requires(BaseModel):
    """Requires directive"""
    op: Literal["Requires"] = "Requires"
    name: str = Field(..., min_length=1, description="Required module name")
    qualifier: RequiresQualifier = Field(default=RequiresQualifier.NONE, description="none, static or transitive")

    phase: ClassVar[DirectivePhase] = DirectivePhase.STRUCTURAL

    def describe(self) -> str:
        if self.qualifier == RequiresQualifier.NONE:
            return f"requires({self.name})"
        return f"requires {self.qualifier.value}({self.name})"


class Uses(BaseModel):
    """Uses directive"""
    op: Literal["Uses"] = "Uses"
    service: str = Field(..., min_length=1, description="Fully qualified service interface")

    phase: ClassVar[DirectivePhase] = DirectivePhase.STRUCTURAL

    def describe(self) -> str:
        return f"uses({self.service})"


class OpensPackage(BaseModel):
    """OpensPackage directive"""
    op: Literal["OpensPackage"] = "OpensPackage"
    package: str = Field(..., min_length=1, description="Package name")

    phase: ClassVar[DirectivePhase] = DirectivePhase.STRUCTURAL

    def describe(self) -> str:
        return f"opens({self.package})"


class MergeJar(BaseModel):
    """
    MergeJar directive
    Folds another artifact's packages and edges into this module
    """
    op: Literal["MergeJar"] = "MergeJar"
    source: str = Field(..., description="Source pattern 'group:name[:version]'")

    phase: ClassVar[DirectivePhase] = DirectivePhase.STRUCTURAL

    @field_validator("source")
    @classmethod
    def check_source(cls, value: str) -> str:
        return _check_pattern(value)

    @property
    def pattern(self) -> CoordinatePattern:
        return CoordinatePattern.parse(self.source)

    def describe(self) -> str:
        return f"mergeJar({self.source})"


Directive = Annotated[
    Union[
        RemoveDependency, RemoveDependencyGroup, AddDependency,
        SetModuleName, ExportAllPackages, ExportPackage, PatchRealModule,
        RequireAllDefinedDependencies, AutomaticModule,
        Requires, Uses, OpensPackage, MergeJar,
    ],
    Field(discriminator="op"),
]
