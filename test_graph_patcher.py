"""
Tests for the graph patcher: edge directives, structural directives and merges.
"""
import pytest

from modpatch.adapters.archive.package_lister import StaticPackageLister
from modpatch.core.artifacts.models import DependencyScope
from modpatch.core.coordinates import ArtifactCoordinate
from modpatch.core.ir.descriptor import ModuleDescriptor
from modpatch.core.ir.graph import DependencyGraph
from modpatch.runtime.patching.graph_patcher import GraphPatcher
from modpatch.runtime.synthesis.descriptor_synthesizer import DescriptorSynthesizer


C = ArtifactCoordinate.parse


def _patch(graph, rules, lister=None):
    DescriptorSynthesizer(rules, lister).synthesize(graph)
    patcher = GraphPatcher(rules)
    patcher.apply(graph)
    return patcher


def _targets(graph, notation):
    return [str(e.target) for e in graph.edges(C(notation))]


class TestEdgeRemoval:
    """Test removeDependency()."""

    def test_remove_edge(self, make_artifact, make_graph, make_rule_set):
        """Test the named edge disappears."""
        graph = make_graph(make_artifact("G:lib:1.0", ["G:annot:1.0"]), make_artifact("G:annot:1.0"))
        rules = make_rule_set([{"target": "G:lib", "directives": [
            {"op": "RemoveDependency", "target": "G:annot:1.0"},
        ]}])

        _patch(graph, rules)

        assert graph.edges(C("G:lib:1.0")) == []

    def test_remove_absent_edge_is_noop(self, make_artifact, make_graph, make_rule_set):
        """Test removing an edge that does not exist changes nothing."""
        graph = make_graph(make_artifact("G:lib:1.0", ["G:core:1.0"]), make_artifact("G:core:1.0"))
        rules = make_rule_set([{"target": "G:lib", "directives": [
            {"op": "RemoveDependency", "target": "G:annot"},
        ]}])

        patcher = _patch(graph, rules)

        assert _targets(graph, "G:lib:1.0") == ["G:core:1.0"]
        assert patcher.stats["edges_removed"] == 0

    def test_versionless_pattern_removes_any_version(self, make_artifact, make_graph, make_rule_set):
        """Test 'group:name' removes the edge whatever its version."""
        graph = make_graph(
            make_artifact("G:lib:1.0", ["G:annot:3.1", "G:core:1.0"]),
            make_artifact("G:annot:3.1"),
            make_artifact("G:core:1.0"),
        )
        rules = make_rule_set([{"target": "G:lib", "directives": [
            {"op": "RemoveDependency", "target": "G:annot"},
        ]}])

        _patch(graph, rules)

        assert _targets(graph, "G:lib:1.0") == ["G:core:1.0"]

    def test_dependency_group(self, make_artifact, make_graph, make_rule_set):
        """Test a named group removes all its members."""
        graph = make_graph(
            make_artifact("G:lib:1.0", ["A:jsr305:3.0", "B:annotations:1.0", "G:core:1.0"]),
            make_artifact("A:jsr305:3.0"),
            make_artifact("B:annotations:1.0"),
            make_artifact("G:core:1.0"),
        )
        rules = make_rule_set(
            [{"target": "G:lib", "directives": [{"op": "RemoveDependencyGroup", "group": "annotationLibraries"}]}],
            groups={"annotationLibraries": ["A:jsr305", "B:annotations"]}
        )

        _patch(graph, rules)

        assert _targets(graph, "G:lib:1.0") == ["G:core:1.0"]


class TestEdgeAddition:
    """Test addDependency() and its ordering with removals."""

    def test_add_edge(self, make_artifact, make_graph, make_rule_set):
        """Test a new edge with its scope."""
        graph = make_graph(make_artifact("G:lib:1.0"), make_artifact("G:extra:2.0"))
        rules = make_rule_set([{"target": "G:lib", "directives": [
            {"op": "AddDependency", "target": "G:extra", "scope": "api"},
        ]}])

        _patch(graph, rules)

        edges = graph.edges(C("G:lib:1.0"))
        assert [str(e.target) for e in edges] == ["G:extra:2.0"]
        assert edges[0].scope == DependencyScope.API

    def test_removal_runs_before_addition(self, make_artifact, make_graph, make_rule_set):
        """Test naming the same target in both forms replaces the edge, whatever the declaration order."""
        graph = make_graph(make_artifact("G:lib:1.0", ["G:dep:1.0"]), make_artifact("G:dep:1.0"))
        rules = make_rule_set([{"target": "G:lib", "directives": [
            {"op": "AddDependency", "target": "G:dep:1.0", "scope": "api"},
            {"op": "RemoveDependency", "target": "G:dep"},
        ]}])

        _patch(graph, rules)

        edges = graph.edges(C("G:lib:1.0"))
        assert len(edges) == 1
        assert edges[0].scope == DependencyScope.API

    def test_replacement_across_artifacts(self, make_artifact, make_graph, make_rule_set):
        """Test swapping one library for another (protobuf-javalite for protobuf-java)."""
        graph = make_graph(
            make_artifact("io.grpc:grpc-protobuf-lite:1.60.0", ["com.google.protobuf:protobuf-javalite:3.25.1"]),
            make_artifact("com.google.protobuf:protobuf-javalite:3.25.1"),
            make_artifact("com.google.protobuf:protobuf-java:3.25.1"),
        )
        rules = make_rule_set([{"target": "io.grpc:grpc-protobuf-lite", "directives": [
            {"op": "RemoveDependency", "target": "com.google.protobuf:protobuf-javalite"},
            {"op": "AddDependency", "target": "com.google.protobuf:protobuf-java", "scope": "api"},
        ]}])

        _patch(graph, rules)

        assert _targets(graph, "io.grpc:grpc-protobuf-lite:1.60.0") == ["com.google.protobuf:protobuf-java:3.25.1"]

    def test_existing_edge_takes_new_scope(self, make_artifact, make_graph, make_rule_set):
        """Test adding an existing edge updates its scope instead of duplicating it."""
        graph = make_graph(make_artifact("G:lib:1.0", ["G:dep:1.0"]), make_artifact("G:dep:1.0"))
        rules = make_rule_set([{"target": "G:lib", "directives": [
            {"op": "AddDependency", "target": "G:dep", "scope": "compileOnly"},
        ]}])

        patcher = _patch(graph, rules)

        edges = graph.edges(C("G:lib:1.0"))
        assert len(edges) == 1
        assert edges[0].scope == DependencyScope.COMPILE_ONLY
        assert patcher.stats["edges_added"] == 0

    def test_missing_target_skipped(self, make_artifact, make_graph, make_rule_set):
        """Test a dangling target adds nothing (it is reported by the synthesizer)."""
        graph = make_graph(make_artifact("G:lib:1.0"))
        rules = make_rule_set([{"target": "G:lib", "directives": [
            {"op": "AddDependency", "target": "G:ghost:1.0"},
        ]}])

        _patch(graph, rules)

        assert graph.edges(C("G:lib:1.0")) == []

    def test_version_rule_applies_after_wildcard(self, make_artifact, make_graph, make_rule_set):
        """Test a version rule can re-add what a wildcard rule removed in the same run."""
        graph = make_graph(make_artifact("G:lib:1.0", ["G:dep:1.0"]), make_artifact("G:dep:1.0"))
        rules = make_rule_set([
            {"target": "G:lib:1.0", "directives": [{"op": "AddDependency", "target": "G:dep:1.0", "scope": "runtime"}]},
            {"target": "G:lib", "directives": [{"op": "RemoveDependency", "target": "G:dep"}]},
        ])

        _patch(graph, rules)

        edges = graph.edges(C("G:lib:1.0"))
        assert [e.scope for e in edges] == [DependencyScope.RUNTIME]


class TestCatalogUntouched:
    """Test the patcher only changes the working graph."""

    def test_catalog_not_mutated(self, make_artifact, make_catalog, make_rule_set):
        """Test catalog edges survive patching."""
        catalog = make_catalog(make_artifact("G:lib:1.0", ["G:annot:1.0"]), make_artifact("G:annot:1.0"))
        rules = make_rule_set([{"target": "G:lib", "directives": [
            {"op": "RemoveDependency", "target": "G:annot"},
        ]}])
        graph = DependencyGraph.from_catalog(catalog)

        _patch(graph, rules)

        assert graph.edges(C("G:lib:1.0")) == []
        assert [str(t) for t in catalog.read(C("G:lib:1.0")).dependency_targets()] == ["G:annot:1.0"]

    def test_frozen_graph_rejects_changes(self, make_artifact, make_graph, make_rule_set):
        """Test patching a frozen graph fails."""
        graph = make_graph(make_artifact("G:lib:1.0", ["G:annot:1.0"]), make_artifact("G:annot:1.0"))
        rules = make_rule_set([{"target": "G:lib", "directives": [
            {"op": "RemoveDependency", "target": "G:annot"},
        ]}])
        graph.freeze()

        with pytest.raises(RuntimeError):
            GraphPatcher(rules).apply(graph)


class TestStructuralDirectives:
    """Test requires(), uses() and opens()."""

    def test_structural_directives(self, make_artifact, make_graph, make_rule_set):
        """Test structural directives land in the synthesized descriptor."""
        graph = make_graph(make_artifact("G:lib:1.0"))
        rules = make_rule_set([{"target": "G:lib", "directives": [
            {"op": "Requires", "name": "java.logging"},
            {"op": "Requires", "name": "java.sql", "qualifier": "static"},
            {"op": "Uses", "service": "g.lib.spi.Provider"},
            {"op": "OpensPackage", "package": "g.lib.model"},
        ]}])

        patcher = _patch(graph, rules)

        descriptor = graph.synthesized(C("G:lib:1.0"))
        assert descriptor.required_module_names() == ["java.logging", "java.sql"]
        assert descriptor.find_requires("java.sql").qualifier.value == "static"
        assert descriptor.uses == ["g.lib.spi.Provider"]
        assert descriptor.opens == ["g.lib.model"]
        assert patcher.stats["structural"] == 4

    def test_later_requires_overrides_qualifier(self, make_artifact, make_graph, make_rule_set):
        """Test a version rule's requires() overrides the wildcard qualifier."""
        graph = make_graph(make_artifact("G:lib:1.0"))
        rules = make_rule_set([
            {"target": "G:lib", "directives": [{"op": "Requires", "name": "java.sql"}]},
            {"target": "G:lib:1.0", "directives": [{"op": "Requires", "name": "java.sql", "qualifier": "transitive"}]},
        ])

        _patch(graph, rules)

        entry = graph.synthesized(C("G:lib:1.0")).find_requires("java.sql")
        assert entry.qualifier.value == "transitive"


class TestMergeJar:
    """Test mergeJar()."""

    def _graph(self, make_artifact, make_graph):
        return make_graph(
            make_artifact("G:host:1.0", ["G:src:1.0", "G:common:1.0"], path="libs/host-1.0.jar"),
            make_artifact("G:src:1.0", ["G:common:1.0", "G:extra:1.0", "G:host:1.0"], path="libs/src-1.0.jar"),
            make_artifact("G:common:1.0"),
            make_artifact("G:extra:1.0"),
        )

    def _rules(self, make_rule_set):
        return make_rule_set([{"target": "G:host", "directives": [
            {"op": "SetModuleName", "name": "g.host"},
            {"op": "ExportAllPackages"},
            {"op": "MergeJar", "source": "G:src"},
        ]}])

    def _lister(self):
        return StaticPackageLister({"G:host:1.0": ["g.host"], "G:src:1.0": ["g.src", "g.src.util"]})

    def test_packages_folded(self, make_artifact, make_graph, make_rule_set):
        """Test the source's packages become exports of the host."""
        graph = self._graph(make_artifact, make_graph)

        _patch(graph, self._rules(make_rule_set), self._lister())

        descriptor = graph.synthesized(C("G:host:1.0"))
        assert set(["g.src", "g.src.util"]).issubset(descriptor.exports)
        assert descriptor.exports == ["g.host", "g.src", "g.src.util"]
        assert descriptor.merged_jars == [C("G:src:1.0")]

    def test_edges_folded(self, make_artifact, make_graph, make_rule_set):
        """Test the source's edges move to the host and host->source becomes internal."""
        graph = self._graph(make_artifact, make_graph)

        _patch(graph, self._rules(make_rule_set), self._lister())

        assert _targets(graph, "G:host:1.0") == ["G:common:1.0", "G:extra:1.0"]

    def test_source_not_emitted(self, make_artifact, make_graph, make_rule_set):
        """Test the merged source is inert and resolves to the host module."""
        graph = self._graph(make_artifact, make_graph)

        _patch(graph, self._rules(make_rule_set), self._lister())

        assert graph.is_merged(C("G:src:1.0"))
        assert C("G:src:1.0") not in graph.emitted_coordinates()
        assert C("G:src:1.0") in graph.coordinates()
        assert graph.module_name(C("G:src:1.0")) == "g.host"
        assert graph.merged_sources(C("G:host:1.0")) == [C("G:src:1.0")]

    def test_native_exports_of_real_source(self, make_artifact, make_graph, make_rule_set):
        """Test a source with a real descriptor contributes its declared exports only."""
        graph = make_graph(
            make_artifact("G:host:1.0"),
            make_artifact("G:src:1.0", descriptor=ModuleDescriptor(name="g.src", exports=["g.src.api"]),
                          packages=["g.src.api", "g.src.internal"]),
        )
        rules = make_rule_set([{"target": "G:host", "directives": [{"op": "MergeJar", "source": "G:src"}]}])

        _patch(graph, rules)

        assert graph.synthesized(C("G:host:1.0")).exports == ["g.src.api"]

    def test_removed_edge_not_reintroduced(self, make_artifact, make_graph, make_rule_set):
        """Test an edge the host removed stays removed when the merged source also has it."""
        graph = make_graph(
            make_artifact("G:host:1.0", ["G:annot:1.0", "G:src:1.0"]),
            make_artifact("G:src:1.0", ["G:annot:1.0", "G:common:1.0"]),
            make_artifact("G:annot:1.0"),
            make_artifact("G:common:1.0"),
        )
        rules = make_rule_set([{"target": "G:host", "directives": [
            {"op": "RemoveDependency", "target": "G:annot"},
            {"op": "MergeJar", "source": "G:src"},
            {"op": "RequireAllDefinedDependencies"},
        ]}])

        synthesizer = DescriptorSynthesizer(rules)
        synthesizer.synthesize(graph)
        GraphPatcher(rules).apply(graph)
        synthesizer.complete(graph)

        assert _targets(graph, "G:host:1.0") == ["G:common:1.0"]
        assert graph.synthesized(C("G:host:1.0")).required_module_names() == ["G.common"]

    def test_no_edge_to_earlier_merged_source(self, make_artifact, make_graph, make_rule_set):
        """Test a later source's edge to an already merged source is not folded into the host."""
        graph = make_graph(
            make_artifact("G:host:1.0", ["G:s1:1.0", "G:s2:1.0"]),
            make_artifact("G:s1:1.0", ["G:s2:1.0", "G:common:1.0"]),
            make_artifact("G:s2:1.0"),
            make_artifact("G:common:1.0"),
        )
        rules = make_rule_set([{"target": "G:host", "directives": [
            {"op": "MergeJar", "source": "G:s2"},
            {"op": "MergeJar", "source": "G:s1"},
        ]}])

        _patch(graph, rules)

        assert _targets(graph, "G:host:1.0") == ["G:common:1.0"]
        assert graph.merged_sources(C("G:host:1.0")) == [C("G:s1:1.0"), C("G:s2:1.0")]
