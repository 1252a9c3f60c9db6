"""
Rule Set Schema

A rule set is a serializable document: policy flags, named dependency
groups and an ordered list of patch rules keyed by coordinate pattern.
"""
from typing import Dict, List, Optional, Type

from pydantic import BaseModel, Field, field_validator

from modpatch.core.coordinates import CoordinatePattern
from .directives import (
    Directive, DirectivePhase, ExportAllPackages, ExportPackage, MergeJar, OpensPackage,
    PatchRealModule, RequireAllDefinedDependencies, Requires, SetModuleName, Uses
)


# Directives that need a synthesized descriptor to land in. AutomaticModule
# is a descriptor-phase directive too but keeps the artifact automatic.
SYNTHESIS_DIRECTIVES = (
    SetModuleName, ExportAllPackages, ExportPackage, PatchRealModule, RequireAllDefinedDependencies,
    Requires, Uses, OpensPackage, MergeJar
)


class ReconcilePolicy(BaseModel):
    """Global policy flags"""
    fail_on_missing_descriptor: bool = Field(
        default=False,
        description="Fail on artifacts with neither a descriptor nor a manifest module name"
    )
    fail_on_automatic_modules: bool = Field(
        default=False,
        description="Fail on every artifact left without a descriptor after synthesis"
    )
    known_modules: List[str] = Field(
        default_factory=list,
        description="Module names provided outside the graph (java.* and jdk.* are always known)"
    )


class PatchRule(BaseModel):
    """
    Patch rule

    Directive order is significant and preserved.
    """
    target: str = Field(..., description="Coordinate pattern 'group:name' or 'group:name:version'")
    directives: List[Directive] = Field(default_factory=list, description="Ordered directives")
    description: Optional[str] = Field(None, description="Why the rule exists")

    @field_validator("target")
    @classmethod
    def check_target(cls, value: str) -> str:
        CoordinatePattern.parse(value)
        return value

    @property
    def pattern(self) -> CoordinatePattern:
        return CoordinatePattern.parse(self.target)

    def directives_of(self, *types: Type[BaseModel]) -> List[BaseModel]:
        return [d for d in self.directives if isinstance(d, types)]

    def directives_in_phase(self, phase: DirectivePhase) -> List[BaseModel]:
        return [d for d in self.directives if d.phase == phase]

    def requests_synthesis(self) -> bool:
        return any(isinstance(d, SYNTHESIS_DIRECTIVES) for d in self.directives)


class RuleSetConfig(BaseModel):
    """Complete rule-set document"""
    policy: ReconcilePolicy = Field(default_factory=ReconcilePolicy, description="Policy flags")
    dependency_groups: Dict[str, List[str]] = Field(
        default_factory=dict,
        description="Named lists of coordinate patterns for RemoveDependencyGroup"
    )
    rules: List[PatchRule] = Field(default_factory=list, description="Patch rules in declaration order")

    class Config:
        json_schema_extra = {
            "example": {
                "policy": {"fail_on_missing_descriptor": False, "fail_on_automatic_modules": False},
                "dependency_groups": {
                    "annotationLibraries": [
                        "com.google.code.findbugs:jsr305",
                        "com.google.errorprone:error_prone_annotations",
                        "com.google.j2objc:j2objc-annotations"
                    ]
                },
                "rules": [
                    {
                        "target": "com.google.guava:guava",
                        "directives": [
                            {"op": "RemoveDependencyGroup", "group": "annotationLibraries"},
                            {"op": "RemoveDependency", "target": "com.google.guava:failureaccess"},
                            {"op": "SetModuleName", "name": "com.google.common"},
                            {"op": "ExportAllPackages"},
                            {"op": "RequireAllDefinedDependencies"},
                            {"op": "Requires", "name": "java.logging"}
                        ]
                    },
                    {
                        "target": "io.grpc:grpc-protobuf-lite",
                        "directives": [
                            {"op": "RemoveDependency", "target": "com.google.protobuf:protobuf-javalite"},
                            {"op": "AddDependency", "target": "com.google.protobuf:protobuf-java", "scope": "api"}
                        ]
                    }
                ]
            }
        }
