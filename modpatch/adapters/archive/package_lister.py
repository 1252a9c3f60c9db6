"""
Package Listers

Discover the packages contained in an artifact's archive. The descriptor
synthesizer consumes a lister to compute exportAllPackages() export sets.

Usage:
    lister = JarPackageLister()
    packages = lister.list_packages(artifact)
"""
import logging
import zipfile
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Protocol, Set

from modpatch.core.artifacts.models import Artifact

logger = logging.getLogger(__name__)

MODULE_INFO_CLASS = "module-info.class"
MANIFEST_PATH = "META-INF/MANIFEST.MF"
AUTOMATIC_MODULE_NAME_HEADER = "Automatic-Module-Name"


class PackageLister(Protocol):
    """Anything able to list the packages of an artifact"""

    def list_packages(self, artifact: Artifact) -> Set[str]:
        ...


class StaticPackageLister:
    """
    Package lister backed by packages known up front

    Looks the artifact up by its coordinate string, then falls back to the
    package list the resolver attached to the artifact.
    """

    def __init__(self, packages: Optional[Mapping[str, Iterable[str]]] = None):
        """
        Initialize lister

        Args:
            packages: 'group:name:version' -> package names
        """
        self.packages = {key: set(value) for key, value in (packages or {}).items()}

    def list_packages(self, artifact: Artifact) -> Set[str]:
        known = self.packages.get(str(artifact.coordinate))
        if known is not None:
            return set(known)
        return set(artifact.packages or [])


class JarPackageLister:
    """
    Package lister reading the artifact's archive

    Packages are the directories holding '.class' entries; META-INF
    (including multi-release versions) and module-info are skipped.
    """

    def __init__(self, base_path: Optional[str] = None):
        self.base_path = Path(base_path) if base_path else None

    def _resolve(self, path: str) -> Path:
        full_path = Path(path)
        if not full_path.is_absolute() and self.base_path is not None:
            full_path = self.base_path / full_path
        return full_path

    def list_packages(self, artifact: Artifact) -> Set[str]:
        """
        List packages of an artifact

        Args:
            artifact: Artifact whose 'path' points at a jar

        Returns:
            Package names; the resolver package list when the archive is
            absent or unreadable
        """
        if not artifact.path:
            logger.warning(f"No archive path for {artifact.coordinate}, using resolver package list")
            return set(artifact.packages or [])
        jar_path = self._resolve(artifact.path)
        try:
            return read_jar_metadata(str(jar_path))["packages"]
        except (OSError, zipfile.BadZipFile) as e:
            logger.warning(f"Cannot read {jar_path} for {artifact.coordinate}: {e}; using resolver package list")
            return set(artifact.packages or [])


def read_jar_metadata(jar_path: str) -> Dict[str, Any]:
    """
    Read module-related metadata from a jar

    Args:
        jar_path: Path to the jar file

    Returns:
        Dictionary with 'packages' (set), 'has_module_info' (bool) and
        'automatic_module_name' (str or None)
    """
    packages: Set[str] = set()
    has_module_info = False
    automatic_module_name = None

    with zipfile.ZipFile(jar_path) as jar:
        for name in jar.namelist():
            if name == MODULE_INFO_CLASS or (name.startswith("META-INF/versions/") and name.endswith("/" + MODULE_INFO_CLASS)):
                has_module_info = True
                continue
            if not name.endswith(".class") or name.startswith("META-INF/"):
                continue
            if "/" not in name:
                continue  # default package
            packages.add(name.rsplit("/", 1)[0].replace("/", "."))

        if MANIFEST_PATH in jar.namelist():
            manifest = jar.read(MANIFEST_PATH).decode("utf-8", errors="replace")
            automatic_module_name = _manifest_attribute(manifest, AUTOMATIC_MODULE_NAME_HEADER)

    return {
        "packages": packages,
        "has_module_info": has_module_info,
        "automatic_module_name": automatic_module_name,
    }


def _manifest_attribute(manifest: str, header: str) -> Optional[str]:
    """Read a main-section manifest attribute (handles 72-byte continuation lines)"""
    lines = []
    for raw in manifest.splitlines():
        if raw.startswith(" ") and lines:
            lines[-1] += raw[1:]
        elif raw.strip() == "":
            break  # end of main section
        else:
            lines.append(raw)
    for line in lines:
        key, sep, value = line.partition(":")
        if sep and key.strip() == header:
            return value.strip() or None
    return None
