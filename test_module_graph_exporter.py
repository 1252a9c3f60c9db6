"""
Tests for module graph emission.
"""
import json

import pytest

from modpatch.adapters.archive.package_lister import StaticPackageLister
from modpatch.adapters.linker.exporter import ModuleGraphExporter
from modpatch.core.errors import ModuleGraphDefect
from modpatch.core.ir.descriptor import ModuleDescriptor
from modpatch.runtime.patching.graph_patcher import GraphPatcher
from modpatch.runtime.synthesis.descriptor_synthesizer import DescriptorSynthesizer


@pytest.fixture
def patched_graph(make_artifact, make_graph, make_rule_set):
    """Frozen graph with a synthesized host module, a merged jar, a real module and an automatic module."""
    graph = make_graph(
        make_artifact("G:host:1.0", ["G:src:1.0", ("G:real:2.0", "api")], path="libs/host-1.0.jar"),
        make_artifact("G:src:1.0", ["G:auto:1.0"], path="libs/src-1.0.jar"),
        make_artifact("G:real:2.0", descriptor=ModuleDescriptor(name="g.real", exports=["g.real"]),
                      path="libs/real-2.0.jar"),
        make_artifact("G:auto:1.0", packages=["g.auto"], path="libs/auto-1.0.jar"),
    )
    rules = make_rule_set([{"target": "G:host", "directives": [
        {"op": "SetModuleName", "name": "g.host"},
        {"op": "ExportAllPackages"},
        {"op": "RequireAllDefinedDependencies"},
        {"op": "Uses", "service": "g.host.spi.Plugin"},
        {"op": "MergeJar", "source": "G:src"},
    ]}])
    lister = StaticPackageLister({"G:host:1.0": ["g.host", "g.host.spi"], "G:src:1.0": ["g.src"]})

    synthesizer = DescriptorSynthesizer(rules, lister)
    synthesizer.synthesize(graph)
    GraphPatcher(rules).apply(graph)
    synthesizer.complete(graph)
    graph.freeze()
    return graph


class TestEmit:
    """Test the emitted module graph."""

    def test_modules_sorted_and_merged_source_absent(self, patched_graph):
        """Test one module per emitted coordinate, sorted by name."""
        module_graph = ModuleGraphExporter().emit(patched_graph)
        assert module_graph.module_names() == ["G.auto", "g.host", "g.real"]

    def test_host_module(self, patched_graph):
        """Test the synthesized host carries merged packages, requires, uses and paths."""
        host = ModuleGraphExporter().emit(patched_graph).module("g.host")

        assert host.coordinate == "G:host:1.0"
        assert host.automatic is False
        assert host.exports == ["g.host", "g.host.spi", "g.src"]
        assert [(r.module, r.qualifier.value) for r in host.requires] == [
            ("G.auto", "none"),
            ("g.real", "transitive"),
        ]
        assert host.uses == ["g.host.spi.Plugin"]
        assert host.merged_jars == ["G:src:1.0"]
        assert host.artifact_paths == ["libs/host-1.0.jar", "libs/src-1.0.jar"]

    def test_automatic_module_placeholder(self, patched_graph):
        """Test automatic modules are emitted with the derived name and all their packages."""
        auto = ModuleGraphExporter().emit(patched_graph).module("G.auto")

        assert auto.automatic is True
        assert auto.exports == ["g.auto"]
        assert auto.requires == []

    def test_real_module(self, patched_graph):
        """Test native descriptors are emitted unchanged."""
        real = ModuleGraphExporter().emit(patched_graph).module("g.real")

        assert real.automatic is False
        assert real.exports == ["g.real"]
        assert real.artifact_paths == ["libs/real-2.0.jar"]

    def test_unfrozen_graph_is_defect(self, make_artifact, make_graph):
        """Test emitting an unvalidated graph is an internal defect."""
        graph = make_graph(make_artifact("G:lib:1.0"))
        with pytest.raises(ModuleGraphDefect):
            ModuleGraphExporter().emit(graph)

    def test_duplicate_names_are_defect(self, make_artifact, make_graph):
        """Test a name collision reaching the emitter is an internal defect."""
        graph = make_graph(
            make_artifact("G:a:1.0", automatic_module_name="g.same"),
            make_artifact("G:b:1.0", automatic_module_name="g.same"),
        )
        graph.freeze()

        with pytest.raises(ModuleGraphDefect):
            ModuleGraphExporter().emit(graph)


class TestSerialization:
    """Test JSON output."""

    def test_json_deterministic(self, patched_graph):
        """Test two emissions of the same graph give identical bytes."""
        exporter = ModuleGraphExporter()
        first = exporter.to_json(exporter.emit(patched_graph))
        second = exporter.to_json(exporter.emit(patched_graph))
        assert first == second

    def test_json_content(self, patched_graph):
        """Test the JSON document structure."""
        exporter = ModuleGraphExporter()
        data = json.loads(exporter.to_json(exporter.emit(patched_graph)))

        assert [m["name"] for m in data["modules"]] == ["G.auto", "g.host", "g.real"]
        assert data["modules"][1]["requires"][1] == {"module": "g.real", "qualifier": "transitive"}

    def test_export_writes_file(self, patched_graph, tmp_path):
        """Test export creates parent directories and writes the JSON."""
        output = tmp_path / "build" / "modules" / "module-graph.json"

        written = ModuleGraphExporter().export(patched_graph, output)

        assert written == output
        assert json.loads(output.read_text(encoding="utf-8"))["modules"][0]["name"] == "G.auto"
