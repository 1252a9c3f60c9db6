"""
Deterministic module naming for artifacts without an explicit module name

Transformation applied to 'group:name':
1. A manifest-declared automatic module name wins when present.
2. The group is split on '.', the name on every non-alphanumeric character.
3. Name tokens starting with a digit are dropped (versioning tokens such as
   '2' in 'commons-lang-2' or '9999' in placeholder artifacts).
4. The longest prefix of the name tokens that repeats the tail of the group
   tokens is dropped ('io.grpc:grpc-api' -> 'io.grpc.api').
5. Remaining tokens are joined with '.'.
"""
import re
from typing import List, Optional

_SEPARATOR_RE = re.compile(r"[^A-Za-z0-9_]+")


def _tokens(text: str) -> List[str]:
    return [t for t in _SEPARATOR_RE.split(text) if t]


def _overlap(group_tokens: List[str], name_tokens: List[str]) -> int:
    limit = min(len(group_tokens), len(name_tokens))
    for size in range(limit, 0, -1):
        if group_tokens[-size:] == name_tokens[:size]:
            return size
    return 0


def derive_module_name(group: str, name: str, automatic_module_name: Optional[str] = None) -> str:
    """
    Derive a module name from an artifact's group and name

    Args:
        group: Artifact group (e.g., 'io.grpc')
        name: Artifact name (e.g., 'grpc-api')
        automatic_module_name: Manifest 'Automatic-Module-Name', if any

    Returns:
        Module name (e.g., 'io.grpc.api')
    """
    if automatic_module_name:
        return automatic_module_name

    group_tokens = [t for t in _tokens(group) if not t[0].isdigit()]
    name_tokens = [t for t in _tokens(name) if not t[0].isdigit()]
    name_tokens = name_tokens[_overlap(group_tokens, name_tokens):]
    return ".".join(group_tokens + name_tokens)
