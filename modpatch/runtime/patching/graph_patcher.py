"""
Graph Patcher
Applies the rule set's edge and structural directives to the working graph

Application order, across the whole graph:
1. RemoveDependency
2. AddDependency
3. Requires / Uses / OpensPackage / MergeJar

Within a phase, directives run in rule-lookup order (wildcard rules, then
exact-version rules) and then in declaration order. Removing before adding
lets a rule replace an edge by naming the same target in both forms.
"""
import logging

from modpatch.core.coordinates import ArtifactCoordinate, CoordinatePattern
from modpatch.core.ir.graph import DependencyGraph
from modpatch.core.patch.directives import (
    AddDependency, DirectivePhase, MergeJar, OpensPackage, RemoveDependency, Requires, Uses
)
from modpatch.core.patch.ruleset import RuleSet

logger = logging.getLogger(__name__)


PATCH_PHASES = (DirectivePhase.EDGE_REMOVAL, DirectivePhase.EDGE_ADDITION, DirectivePhase.STRUCTURAL)


class GraphPatcher:
    """
    Graph patcher

    Never touches the artifact catalog; every change goes to the
    DependencyGraph working copy.
    """

    def __init__(self, rule_set: RuleSet):
        """
        Initialize graph patcher

        Args:
            rule_set: Loaded rule set
        """
        self.rule_set = rule_set
        self.stats = {"edges_removed": 0, "edges_added": 0, "structural": 0, "merged": 0}

    def apply(self, graph: DependencyGraph) -> DependencyGraph:
        """
        Apply all patch directives

        Args:
            graph: Working dependency graph (mutated in place)

        Returns:
            The same graph, for chaining
        """
        self.stats = {"edges_removed": 0, "edges_added": 0, "structural": 0, "merged": 0}
        coordinates = graph.coordinates()

        for phase in PATCH_PHASES:
            for coordinate in coordinates:
                if graph.is_merged(coordinate):
                    continue
                for rule in self.rule_set.lookup(coordinate):
                    for directive in rule.directives_in_phase(phase):
                        logger.debug(f"{coordinate}: {directive.describe()}")
                        self._apply_directive(graph, coordinate, directive)

        logger.info(
            f"Patched graph: {self.stats['edges_removed']} edge(s) removed, "
            f"{self.stats['edges_added']} added, {self.stats['merged']} jar(s) merged"
        )
        return graph

    def _apply_directive(self, graph: DependencyGraph, coordinate: ArtifactCoordinate, directive) -> None:
        if isinstance(directive, RemoveDependency):
            self.stats["edges_removed"] += graph.remove_edges(coordinate, directive.pattern)
        elif isinstance(directive, AddDependency):
            target = graph.resolve(directive.pattern)
            if target is None:
                return  # reported as a dangling rule target by the synthesizer
            if target == coordinate:
                logger.warning(f"Ignoring {directive.describe()} on {coordinate}: self dependency")
                return
            if graph.add_edge(coordinate, target, directive.scope):
                self.stats["edges_added"] += 1
        elif isinstance(directive, MergeJar):
            self._merge(graph, coordinate, directive)
        elif isinstance(directive, (Requires, Uses, OpensPackage)):
            self._apply_structural(graph, coordinate, directive)

    def _apply_structural(self, graph: DependencyGraph, coordinate: ArtifactCoordinate, directive) -> None:
        descriptor = graph.synthesized(coordinate)
        if descriptor is None:
            return  # real module without patchRealModule(), reported by the synthesizer
        if isinstance(directive, Requires):
            descriptor.add_requires(directive.name, directive.qualifier)
        elif isinstance(directive, Uses):
            descriptor.add_uses(directive.service)
        else:
            descriptor.add_opens([directive.package])
        self.stats["structural"] += 1

    def _merge(self, graph: DependencyGraph, host: ArtifactCoordinate, directive: MergeJar) -> None:
        """
        Fold the source artifact into the host module

        The source's packages and edges move to the host; the source stays
        in the graph for traceability but is no longer emitted.
        """
        source = graph.resolve(directive.pattern)
        if source is None:
            return
        if graph.is_merged(source):
            logger.warning(f"{source} is already merged into {graph.merge_host(source)}")
            return

        descriptor = graph.synthesized(host)
        if descriptor is None:
            return  # real module without patchRealModule(), reported by the synthesizer
        descriptor.add_exports(graph.exported_packages(source))
        descriptor.add_merged_jar(source)

        removed = [d.pattern for rule in self.rule_set.lookup(host) for d in rule.directives_of(RemoveDependency)]
        for edge in graph.edges(source):
            if edge.target in (host, source) or graph.merge_host(edge.target) == host:
                continue
            if any(pattern.matches(edge.target) for pattern in removed):
                logger.debug(f"Not folding {source} -> {edge.target}: removed from {host}")
                continue
            if graph.add_edge(host, edge.target, edge.scope, replace_scope=False):
                self.stats["edges_added"] += 1
        # Edges from the host to its merged source are now internal
        self.stats["edges_removed"] += graph.remove_edges(host, CoordinatePattern.exact(source))

        graph.merge(source, host)
        self.stats["merged"] += 1
        logger.debug(f"Merged {source} into {host}")

