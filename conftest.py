"""
Pytest fixtures shared by the test modules at the repository root.
"""
import sys
from pathlib import Path

import pytest

# Add project root to path so tests can import the modpatch package
project_root = Path(__file__).parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from modpatch.core.artifacts.catalog import ArtifactCatalog
from modpatch.core.artifacts.models import Artifact, DependencyEdge, DependencyScope
from modpatch.core.coordinates import ArtifactCoordinate
from modpatch.core.ir.graph import DependencyGraph
from modpatch.core.patch.ruleset import RuleSet


@pytest.fixture
def make_artifact():
    """Factory: make_artifact('g:n:v', dependencies=['g:d:1', ('g:e:1', 'api')], packages=[...])"""

    def _make(notation, dependencies=(), packages=None, descriptor=None, path=None,
              automatic_module_name=None):
        edges = []
        for dependency in dependencies:
            if isinstance(dependency, tuple):
                target, scope = dependency
            else:
                target, scope = dependency, DependencyScope.IMPLEMENTATION
            edges.append(DependencyEdge(target=ArtifactCoordinate.parse(target), scope=scope))
        return Artifact(
            coordinate=ArtifactCoordinate.parse(notation),
            dependencies=edges,
            packages=packages,
            descriptor=descriptor,
            path=path,
            automatic_module_name=automatic_module_name,
        )

    return _make


@pytest.fixture
def make_catalog():
    """Factory: make_catalog(artifact, artifact, ...)"""

    def _make(*artifacts):
        return ArtifactCatalog(list(artifacts))

    return _make


@pytest.fixture
def make_graph(make_catalog):
    """Factory: working graph over the given artifacts"""

    def _make(*artifacts):
        return DependencyGraph.from_catalog(make_catalog(*artifacts))

    return _make


@pytest.fixture
def make_rule_set():
    """Factory: make_rule_set([{'target': ..., 'directives': [...]}], policy={...}, groups={...})"""

    def _make(rules=(), policy=None, groups=None):
        return RuleSet.from_config({
            "policy": policy or {},
            "dependency_groups": groups or {},
            "rules": list(rules),
        })

    return _make
