"""
Patch module

Patch rules are ordered directive lists keyed by artifact coordinate
pattern. They correct dependency edges and drive descriptor synthesis.
"""
from .directives import (
    Directive, DirectivePhase, RemoveDependency, RemoveDependencyGroup, AddDependency,
    SetModuleName, ExportAllPackages, ExportPackage, PatchRealModule,
    RequireAllDefinedDependencies, AutomaticModule, Requires, Uses, OpensPackage, MergeJar
)
from .schema import PatchRule, ReconcilePolicy, RuleSetConfig
from .ruleset import RuleSet, load_rule_set

__all__ = [
    'Directive', 'DirectivePhase', 'RemoveDependency', 'RemoveDependencyGroup', 'AddDependency',
    'SetModuleName', 'ExportAllPackages', 'ExportPackage', 'PatchRealModule',
    'RequireAllDefinedDependencies', 'AutomaticModule', 'Requires', 'Uses', 'OpensPackage', 'MergeJar',
    'PatchRule', 'ReconcilePolicy', 'RuleSetConfig', 'RuleSet', 'load_rule_set'
]
