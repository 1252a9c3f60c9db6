"""
Graph violations and the validation report
"""
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
from enum import Enum


class ViolationKind(str, Enum):
    """Violation kinds"""
    CONFIGURATION = "configuration"
    DANGLING_RULE_TARGET = "dangling_rule_target"
    REAL_MODULE_PATCH = "real_module_patch"
    MISSING_DESCRIPTOR = "missing_descriptor"
    MODULE_NAME_COLLISION = "module_name_collision"
    SPLIT_PACKAGE = "split_package"
    DANGLING_REQUIRES = "dangling_requires"
    UNUSED_RULE = "unused_rule"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass
class GraphViolation:
    """Represents a single reconciliation problem"""
    kind: ViolationKind
    severity: Severity
    message: str
    coordinates: List[str] = field(default_factory=list)  # offending artifact coordinates
    modules: List[str] = field(default_factory=list)  # module names involved
    rule_target: Optional[str] = None
    package: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "message": self.message,
            "coordinates": list(self.coordinates),
            "modules": list(self.modules),
            "rule_target": self.rule_target,
            "package": self.package,
        }


def error(kind: ViolationKind, message: str, **details) -> GraphViolation:
    return GraphViolation(kind=kind, severity=Severity.ERROR, message=message, **details)


def warning(kind: ViolationKind, message: str, **details) -> GraphViolation:
    return GraphViolation(kind=kind, severity=Severity.WARNING, message=message, **details)


@dataclass
class ValidationReport:
    """All violations gathered in one validation run"""
    errors: List[GraphViolation] = field(default_factory=list)
    warnings: List[GraphViolation] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.errors

    def add(self, violation: GraphViolation) -> None:
        if violation.is_error:
            self.errors.append(violation)
        else:
            self.warnings.append(violation)

    def extend(self, violations: List[GraphViolation]) -> None:
        for violation in violations:
            self.add(violation)

    def of_kind(self, kind: ViolationKind) -> List[GraphViolation]:
        return [v for v in self.errors + self.warnings if v.kind == kind]

    def summary(self) -> Dict[str, Any]:
        """Counts by kind, in the same shape for every run"""
        by_kind: Dict[str, int] = {}
        for v in self.errors + self.warnings:
            by_kind[v.kind.value] = by_kind.get(v.kind.value, 0) + 1

        return {
            "summary": {
                "errors": len(self.errors),
                "warnings": len(self.warnings),
                "total": len(self.errors) + len(self.warnings),
                "passed": self.passed
            },
            "violations_by_kind": by_kind,
            "errors": [v.to_dict() for v in self.errors],
            "warnings": [v.to_dict() for v in self.warnings]
        }
