"""
Artifact module
Resolved artifacts and the read-only catalog built from resolver output
"""

from .models import Artifact, DependencyEdge, DependencyScope
from .catalog import ArtifactCatalog

__all__ = ['Artifact', 'DependencyEdge', 'DependencyScope', 'ArtifactCatalog']
