"""
Archive adapter
Package discovery for artifact archives
"""

from .package_lister import PackageLister, StaticPackageLister, JarPackageLister, read_jar_metadata

__all__ = ['PackageLister', 'StaticPackageLister', 'JarPackageLister', 'read_jar_metadata']
