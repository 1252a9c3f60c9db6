"""
Resolver adapter
Imports the external resolver's output as an artifact catalog
"""

from .importer import ResolverImporter

__all__ = ['ResolverImporter']
