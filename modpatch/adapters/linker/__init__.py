"""
Linker adapter
Hands the validated module graph to the downstream compiler/linker
"""

from .exporter import ModuleGraphExporter, ModuleGraph, EmittedModule

__all__ = ['ModuleGraphExporter', 'ModuleGraph', 'EmittedModule']
