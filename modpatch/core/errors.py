"""
Error types raised by the reconciliation pipeline.
"""
from typing import Optional


class ConfigurationError(ValueError):
    """Malformed rule set or catalog input, detected before the pipeline runs"""

    def __init__(self, message: str, rule_target: Optional[str] = None):
        super().__init__(message)
        self.rule_target = rule_target


class ReconcileError(Exception):
    """
    Raised when the validation gate rejects the patched graph.

    Carries the complete validation report so callers can fix every
    reported problem in one go.
    """

    def __init__(self, report):
        self.report = report
        errors = report.errors
        lines = [f"Module graph reconciliation failed with {len(errors)} error(s):"]
        lines.extend(f"  - [{v.kind.value}] {v.message}" for v in errors)
        super().__init__("\n".join(lines))


class ModuleGraphDefect(RuntimeError):
    """Internal invariant broken while emitting an already validated graph"""
