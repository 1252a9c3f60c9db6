"""
Descriptor Synthesizer
Builds module descriptors for artifacts that lack one (or are flagged
patchRealModule) from the rule set's directives

Two entry points around the graph patcher:
- synthesize(): scan phase, then skeleton descriptors (name, exports)
- complete(): requireAllDefinedDependencies over the post-patch edges
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Set

from modpatch.adapters.archive.package_lister import PackageLister, StaticPackageLister
from modpatch.core.coordinates import ArtifactCoordinate
from modpatch.core.artifacts.models import DependencyScope
from modpatch.core.ir.descriptor import ModuleDescriptor, RequiresQualifier
from modpatch.core.ir.graph import DependencyGraph
from modpatch.core.patch.directives import (
    AddDependency, AutomaticModule, ExportAllPackages, ExportPackage, MergeJar,
    PatchRealModule, RequireAllDefinedDependencies, SetModuleName
)
from modpatch.core.patch.ruleset import RuleSet
from modpatch.runtime.validation.violations import GraphViolation, ViolationKind, error

logger = logging.getLogger(__name__)


SCOPE_QUALIFIERS = {
    DependencyScope.API: RequiresQualifier.TRANSITIVE,
    DependencyScope.COMPILE_ONLY: RequiresQualifier.STATIC,
    DependencyScope.IMPLEMENTATION: RequiresQualifier.NONE,
    DependencyScope.RUNTIME: RequiresQualifier.NONE,
}


class DescriptorSynthesizer:
    """
    Synthesizes module descriptors from patch rules

    Problems are collected in self.violations instead of being raised, so
    the pipeline can report them together with the validator's findings.
    """

    def __init__(self, rule_set: RuleSet, package_lister: Optional[PackageLister] = None,
                 max_workers: int = 1):
        """
        Initialize synthesizer

        Args:
            rule_set: Loaded rule set
            package_lister: Package discovery capability (resolver package lists if None)
            max_workers: Threads used for the package scan phase
        """
        self.rule_set = rule_set
        self.package_lister = package_lister or StaticPackageLister()
        self.max_workers = max(1, max_workers)
        self.violations: List[GraphViolation] = []

    def synthesize(self, graph: DependencyGraph) -> List[GraphViolation]:
        """
        Scan packages and create skeleton descriptors

        Args:
            graph: Working dependency graph (mutated in place)

        Returns:
            Violations found (also kept in self.violations)
        """
        self.violations = []
        self._check_rule_targets(graph)

        targets = self._select_targets(graph)
        to_scan = self._scan_requests(graph, targets)

        # Every scan completes before any descriptor or merge uses the results
        for coordinate, packages in self._scan(graph, to_scan).items():
            graph.record_packages(coordinate, packages)

        for coordinate in targets:
            descriptor = self._build_descriptor(graph, coordinate)
            graph.set_synthesized(coordinate, descriptor)
            logger.debug(f"Synthesized descriptor '{descriptor.name}' for {coordinate}")

        for coordinate in graph.coordinates():
            if any(isinstance(d, AutomaticModule) for d in self.rule_set.directives_for(coordinate)):
                graph.exempt(coordinate)

        logger.info(f"Synthesized {len(targets)} module descriptor(s)")
        return self.violations

    def complete(self, graph: DependencyGraph) -> None:
        """
        Add one requires entry per retained edge for requireAllDefinedDependencies()

        Must run after the graph patcher so removed edges stay removed and
        merged artifacts resolve to their host module.
        """
        for coordinate in graph.coordinates():
            descriptor = graph.synthesized(coordinate)
            if descriptor is None or graph.is_merged(coordinate):
                continue
            directives = self.rule_set.directives_for(coordinate)
            if not any(isinstance(d, RequireAllDefinedDependencies) for d in directives):
                continue

            own_name = graph.module_name(coordinate)
            for edge in graph.edges(coordinate):
                required = graph.module_name(edge.target)
                if required == own_name:
                    continue
                # Explicit requires() directives keep their qualifier
                descriptor.add_requires(required, SCOPE_QUALIFIERS[edge.scope], replace=False)
            logger.debug(f"'{own_name}' requires {descriptor.required_module_names()}")

    def _check_rule_targets(self, graph: DependencyGraph) -> None:
        """Report AddDependency/MergeJar targets that are not in the catalog, once per rule directive"""
        reported = set()
        for coordinate in graph.coordinates():
            for rule in self.rule_set.lookup(coordinate):
                for directive in rule.directives_of(AddDependency, MergeJar):
                    key = (rule.target, directive.describe())
                    if key in reported or graph.find(directive.pattern):
                        continue
                    reported.add(key)
                    self.violations.append(error(
                        ViolationKind.DANGLING_RULE_TARGET,
                        f"Rule '{rule.target}' ({directive.describe()}) references "
                        f"'{directive.pattern}' which is not in the artifact catalog",
                        coordinates=[str(directive.pattern)],
                        rule_target=rule.target
                    ))

    def _select_targets(self, graph: DependencyGraph) -> List[ArtifactCoordinate]:
        targets = []
        for coordinate in graph.coordinates():
            rules = self.rule_set.lookup(coordinate)
            if not any(rule.requests_synthesis() for rule in rules):
                continue

            artifact = graph.artifact(coordinate)
            if artifact.descriptor is not None:
                patch_real = any(rule.directives_of(PatchRealModule) for rule in rules)
                if not patch_real:
                    self.violations.append(error(
                        ViolationKind.REAL_MODULE_PATCH,
                        f"{coordinate} already has a module descriptor "
                        f"'{artifact.descriptor.name}'; add patchRealModule() to patch it",
                        coordinates=[str(coordinate)],
                        modules=[artifact.descriptor.name],
                        rule_target=rules[0].target
                    ))
                    continue
            targets.append(coordinate)
        return targets

    def _scan_requests(self, graph: DependencyGraph,
                       targets: List[ArtifactCoordinate]) -> List[ArtifactCoordinate]:
        """Coordinates whose packages must be listed: exportAllPackages() targets and merge sources"""
        requests: Set[ArtifactCoordinate] = set()
        for coordinate in targets:
            directives = self.rule_set.directives_for(coordinate)
            if any(isinstance(d, ExportAllPackages) for d in directives):
                requests.add(coordinate)
            for directive in directives:
                if isinstance(directive, MergeJar):
                    for source in graph.find(directive.pattern):
                        if graph.artifact(source).descriptor is None:
                            requests.add(source)
        return sorted(requests, key=str)

    def _scan(self, graph: DependencyGraph,
              coordinates: List[ArtifactCoordinate]) -> Dict[ArtifactCoordinate, Set[str]]:
        artifacts = [graph.artifact(c) for c in coordinates]
        if self.max_workers == 1 or len(artifacts) < 2:
            listed = [self.package_lister.list_packages(a) for a in artifacts]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                listed = list(executor.map(self.package_lister.list_packages, artifacts))
        return dict(zip(coordinates, listed))

    def _build_descriptor(self, graph: DependencyGraph, coordinate: ArtifactCoordinate) -> ModuleDescriptor:
        artifact = graph.artifact(coordinate)
        directives = self.rule_set.directives_for(coordinate)

        if artifact.descriptor is not None:
            descriptor = artifact.descriptor.model_copy(deep=True)
        else:
            descriptor = ModuleDescriptor(name=graph.module_name(coordinate))

        for directive in directives:
            if isinstance(directive, SetModuleName):
                descriptor.name = directive.name

        if any(isinstance(d, ExportAllPackages) for d in directives):
            descriptor.exports = sorted(graph.scanned_packages(coordinate) or [])
        else:
            descriptor.add_exports(d.package for d in directives if isinstance(d, ExportPackage))

        return descriptor

