"""
Reconcile Workflow

Workflow: Catalog + Rules → Synthesize → Patch → Complete → Validate → Module Graph
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from modpatch.adapters.archive.package_lister import PackageLister
from modpatch.adapters.linker.exporter import ModuleGraph, ModuleGraphExporter
from modpatch.core.artifacts.catalog import ArtifactCatalog
from modpatch.core.errors import ReconcileError
from modpatch.core.ir.graph import DependencyGraph
from modpatch.core.patch.ruleset import RuleSet
from modpatch.runtime.patching.graph_patcher import GraphPatcher
from modpatch.runtime.synthesis.descriptor_synthesizer import DescriptorSynthesizer
from modpatch.runtime.validation.graph_validator import GraphValidator
from modpatch.runtime.validation.violations import GraphViolation, ValidationReport

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Outcome of a successful pipeline run"""
    module_graph: ModuleGraph
    graph: DependencyGraph
    report: ValidationReport
    stats: Dict[str, int] = field(default_factory=dict)

    @property
    def warnings(self) -> List[GraphViolation]:
        return list(self.report.warnings)


class ReconcileWorkflow:
    """
    Reconciliation workflow manager

    Runs the one-shot pipeline for a single build. Nothing is kept between
    runs, so the same catalog and rule set always give the same result.
    """

    def __init__(self, package_lister: Optional[PackageLister] = None, max_workers: int = 1):
        """
        Initialize workflow

        Args:
            package_lister: Package discovery capability for exportAllPackages()
            max_workers: Threads used to list packages
        """
        self.package_lister = package_lister
        self.max_workers = max_workers
        self.exporter = ModuleGraphExporter()

    def run(self, catalog: ArtifactCatalog, rule_set: RuleSet) -> ReconcileResult:
        """
        Run complete reconciliation

        Args:
            catalog: Resolved artifact catalog (never modified)
            rule_set: Loaded rule set

        Returns:
            ReconcileResult with the emitted module graph and any warnings

        Raises:
            ReconcileError: If validation found at least one error; the
                error carries the full report
        """
        # Step 1: Working copy of the catalog
        graph = DependencyGraph.from_catalog(catalog)
        logger.info(f"Reconciling {len(catalog)} artifact(s) with {len(rule_set.rules)} rule(s)")

        # Step 2: Package scan and skeleton descriptors
        synthesizer = DescriptorSynthesizer(rule_set, self.package_lister, self.max_workers)
        upstream = synthesizer.synthesize(graph)

        # Step 3: Edge and structural directives
        patcher = GraphPatcher(rule_set)
        patcher.apply(graph)

        # Step 4: requires derived from the patched edges
        synthesizer.complete(graph)

        # Step 5: Validation gate on the frozen graph
        graph.freeze()
        report = GraphValidator(rule_set).validate(graph, upstream)
        if not report.passed:
            logger.error(f"Reconciliation failed with {len(report.errors)} error(s)")
            raise ReconcileError(report)

        # Step 6: Emit
        module_graph = self.exporter.emit(graph)
        return ReconcileResult(
            module_graph=module_graph,
            graph=graph,
            report=report,
            stats=dict(patcher.stats)
        )

    def get_violations_summary(self, report: ValidationReport) -> Dict[str, Any]:
        """
        Get summary of violations

        Args:
            report: Validation report (from a result or a ReconcileError)

        Returns:
            Summary dict with counts by kind and the violations themselves
        """
        return report.summary()
