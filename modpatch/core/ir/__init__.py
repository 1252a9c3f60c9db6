"""
Internal Representation (IR) module
Module descriptors and the deterministic module naming rule

The working DependencyGraph lives in modpatch.core.ir.graph.
"""

from .descriptor import ModuleDescriptor, RequiresEntry, RequiresQualifier, is_platform_module
from .naming import derive_module_name

__all__ = [
    'ModuleDescriptor', 'RequiresEntry', 'RequiresQualifier', 'is_platform_module',
    'derive_module_name'
]
