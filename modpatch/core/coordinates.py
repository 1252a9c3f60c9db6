"""
Artifact coordinates and coordinate patterns
"""
from typing import Optional, Tuple
import re

from pydantic import BaseModel, ConfigDict, Field


_PART_RE = re.compile(r"^[A-Za-z0-9_.\-+]+$")


class ArtifactCoordinate(BaseModel):
    """
    (group, name, version) identity of an artifact

    Immutable and hashable so it can key dictionaries and sets.
    """
    model_config = ConfigDict(frozen=True)

    group: str = Field(..., description="Group (e.g., 'com.google.guava')")
    name: str = Field(..., description="Artifact name (e.g., 'guava')")
    version: str = Field(..., description="Resolved version (e.g., '33.0.0-jre')")

    @classmethod
    def parse(cls, notation: str) -> 'ArtifactCoordinate':
        """Parse 'group:name:version' notation"""
        parts = notation.strip().split(":")
        if len(parts) != 3 or not all(_PART_RE.match(p) for p in parts):
            raise ValueError(f"Invalid artifact coordinate '{notation}', expected 'group:name:version'")
        return cls(group=parts[0], name=parts[1], version=parts[2])

    @property
    def key(self) -> Tuple[str, str]:
        """Version-less (group, name) key"""
        return (self.group, self.name)

    def __str__(self) -> str:
        return f"{self.group}:{self.name}:{self.version}"


class CoordinatePattern(BaseModel):
    """
    Coordinate with an optional version

    'group:name' matches every version, 'group:name:version' exactly one.
    """
    model_config = ConfigDict(frozen=True)

    group: str = Field(..., description="Group to match")
    name: str = Field(..., description="Artifact name to match")
    version: Optional[str] = Field(None, description="Exact version (None = any version)")

    @classmethod
    def parse(cls, notation: str) -> 'CoordinatePattern':
        """Parse 'group:name' or 'group:name:version' notation"""
        parts = notation.strip().split(":")
        if len(parts) not in (2, 3) or not all(_PART_RE.match(p) for p in parts):
            raise ValueError(f"Invalid coordinate pattern '{notation}', expected 'group:name[:version]'")
        return cls(group=parts[0], name=parts[1], version=parts[2] if len(parts) == 3 else None)

    @classmethod
    def exact(cls, coordinate: ArtifactCoordinate) -> 'CoordinatePattern':
        """Pattern matching exactly one coordinate"""
        return cls(group=coordinate.group, name=coordinate.name, version=coordinate.version)

    @property
    def is_exact(self) -> bool:
        return self.version is not None

    @property
    def key(self) -> Tuple[str, str]:
        return (self.group, self.name)

    def matches(self, coordinate: ArtifactCoordinate) -> bool:
        if coordinate.key != self.key:
            return False
        return self.version is None or self.version == coordinate.version

    def __str__(self) -> str:
        if self.version is None:
            return f"{self.group}:{self.name}"
        return f"{self.group}:{self.name}:{self.version}"
