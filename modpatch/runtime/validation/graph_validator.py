"""
Graph Validator
Structural checks on the patched, synthesized dependency graph

Checks performed:
- Missing descriptors (automatic modules, depending on policy)
- Module name collisions
- Split packages
- Dangling requires
- Unused rules (warning only)

Every check runs; all violations are gathered into one report.
"""
import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from modpatch.core.coordinates import ArtifactCoordinate
from modpatch.core.ir.descriptor import ModuleDescriptor, is_platform_module
from modpatch.core.ir.graph import DependencyGraph
from modpatch.core.patch.ruleset import RuleSet
from modpatch.core.patch.schema import ReconcilePolicy
from .violations import GraphViolation, ValidationReport, ViolationKind, error, warning

logger = logging.getLogger(__name__)


class GraphValidator:
    """
    Module graph validator

    Runs after all patching and synthesis, on a frozen graph.
    """

    def __init__(self, rule_set: RuleSet, policy: Optional[ReconcilePolicy] = None):
        """
        Initialize validator

        Args:
            rule_set: Rule set used to patch the graph (for unused-rule detection)
            policy: Policy flags (the rule set's policy if None)
        """
        self.rule_set = rule_set
        self.policy = policy or rule_set.policy

    def validate(self, graph: DependencyGraph,
                 upstream: Optional[Iterable[GraphViolation]] = None) -> ValidationReport:
        """
        Validate the graph

        Args:
            graph: Patched dependency graph
            upstream: Violations already found by the synthesizer/patcher

        Returns:
            ValidationReport with every error and warning
        """
        report = ValidationReport()
        report.extend(list(upstream or []))

        emitted = graph.emitted_coordinates()
        descriptors = {c: graph.module_descriptor(c) for c in emitted}

        self._check_missing_descriptors(graph, emitted, report)
        self._check_name_collisions(descriptors, report)
        self._check_split_packages(descriptors, report)
        self._check_dangling_requires(descriptors, report)
        self._check_unused_rules(graph, report)

        logger.info(
            f"Validation finished: {len(report.errors)} error(s), {len(report.warnings)} warning(s)"
        )
        return report

    def _check_missing_descriptors(self, graph: DependencyGraph,
                                   emitted: List[ArtifactCoordinate], report: ValidationReport) -> None:
        for coordinate in emitted:
            if not graph.is_automatic(coordinate) or graph.is_exempt(coordinate):
                continue
            artifact = graph.artifact(coordinate)
            if self.policy.fail_on_automatic_modules:
                reason = "automatic modules are not allowed"
            elif self.policy.fail_on_missing_descriptor and not artifact.automatic_module_name:
                reason = "it has neither a module descriptor nor an Automatic-Module-Name"
            else:
                logger.debug(f"{coordinate} passes as automatic module '{graph.module_name(coordinate)}'")
                continue
            detail = "" if self.rule_set.lookup(coordinate) else " and no matching rule"
            report.add(error(
                ViolationKind.MISSING_DESCRIPTOR,
                f"{coordinate} has no module descriptor{detail}: {reason}",
                coordinates=[str(coordinate)],
                modules=[graph.module_name(coordinate)]
            ))

    def _check_name_collisions(self, descriptors: Dict[ArtifactCoordinate, ModuleDescriptor],
                               report: ValidationReport) -> None:
        by_name: Dict[str, List[ArtifactCoordinate]] = defaultdict(list)
        for coordinate, descriptor in descriptors.items():
            by_name[descriptor.name].append(coordinate)

        for name in sorted(by_name):
            owners = by_name[name]
            if len(owners) < 2:
                continue
            report.add(error(
                ViolationKind.MODULE_NAME_COLLISION,
                f"Module name '{name}' is claimed by {', '.join(str(c) for c in owners)}",
                coordinates=[str(c) for c in owners],
                modules=[name]
            ))

    def _check_split_packages(self, descriptors: Dict[ArtifactCoordinate, ModuleDescriptor],
                              report: ValidationReport) -> None:
        # Merged sources are not emitted, so their packages only count for the host
        owners: Dict[str, List[ArtifactCoordinate]] = defaultdict(list)
        for coordinate, descriptor in descriptors.items():
            for package in descriptor.exports:
                owners[package].append(coordinate)

        for package in sorted(owners):
            coordinates = owners[package]
            if len(coordinates) < 2:
                continue
            modules = [descriptors[c].name for c in coordinates]
            report.add(error(
                ViolationKind.SPLIT_PACKAGE,
                f"Package '{package}' is exported by several modules: "
                + ", ".join(f"{m} ({c})" for m, c in zip(modules, coordinates)),
                coordinates=[str(c) for c in coordinates],
                modules=modules,
                package=package
            ))

    def _check_dangling_requires(self, descriptors: Dict[ArtifactCoordinate, ModuleDescriptor],
                                 report: ValidationReport) -> None:
        known = {d.name for d in descriptors.values()} | set(self.policy.known_modules)
        for coordinate, descriptor in descriptors.items():
            for entry in descriptor.requires:
                if entry.module in known or is_platform_module(entry.module):
                    continue
                report.add(error(
                    ViolationKind.DANGLING_REQUIRES,
                    f"Module '{descriptor.name}' ({coordinate}) requires '{entry.module}' "
                    f"which is not in the module graph",
                    coordinates=[str(coordinate)],
                    modules=[descriptor.name, entry.module]
                ))

    def _check_unused_rules(self, graph: DependencyGraph, report: ValidationReport) -> None:
        for rule in self.rule_set.unused_rules(graph.coordinates()):
            logger.warning(f"Rule '{rule.target}' matches no artifact in the catalog")
            report.add(warning(
                ViolationKind.UNUSED_RULE,
                f"Rule '{rule.target}' matches no artifact in the catalog",
                coordinates=[rule.target],
                rule_target=rule.target
            ))
