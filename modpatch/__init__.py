"""
modpatch
Build-time dependency metadata reconciliation

Applies patch rules to a resolved artifact catalog, synthesizes missing
module descriptors and emits a validated module graph.
"""

__version__ = "0.1.0"
