"""
Rule Set
Loading, load-time validation and lookup of patch rules

Lookup contract: rules keyed by 'group:name' (any version) come first, then
rules keyed by the exact 'group:name:version', each group in declaration
order. Version-specific directives therefore run after, and can override,
the general ones.
"""
import json
import logging
from collections import defaultdict
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from modpatch.core.coordinates import ArtifactCoordinate
from modpatch.core.errors import ConfigurationError
from .directives import (
    AutomaticModule, ExportAllPackages, ExportPackage, MergeJar, RemoveDependency, RemoveDependencyGroup
)
from .schema import PatchRule, ReconcilePolicy, RuleSetConfig

logger = logging.getLogger(__name__)


class RuleSet:
    """
    Ordered collection of patch rules

    Construct through from_config(), from_json() or load_rule_set();
    malformed rules raise ConfigurationError before anything else runs.
    """

    def __init__(self, config: Optional[RuleSetConfig] = None):
        """
        Initialize rule set

        Args:
            config: Parsed rule-set document (empty rule set if None)

        Raises:
            ConfigurationError: If a rule is malformed
        """
        config = config or RuleSetConfig()
        self._policy = config.policy
        self._rules = [self._expand_groups(rule, config.dependency_groups) for rule in config.rules]
        self._validate()

        self._wildcard: Dict[Tuple[str, str], List[PatchRule]] = defaultdict(list)
        self._exact: Dict[Tuple[str, str, str], List[PatchRule]] = defaultdict(list)
        for rule in self._rules:
            pattern = rule.pattern
            if pattern.is_exact:
                self._exact[(pattern.group, pattern.name, pattern.version)].append(rule)
            else:
                self._wildcard[pattern.key].append(rule)
        logger.debug(f"Rule set loaded with {len(self._rules)} rule(s)")

    @classmethod
    def from_config(cls, data: Mapping[str, Any]) -> 'RuleSet':
        """Build a rule set from a plain mapping (e.g., parsed JSON)"""
        try:
            config = RuleSetConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid rule set: {e}") from e
        return cls(config)

    @classmethod
    def from_json(cls, text: str) -> 'RuleSet':
        try:
            config = RuleSetConfig.model_validate_json(text)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid rule set: {e}") from e
        return cls(config)

    @property
    def policy(self) -> ReconcilePolicy:
        return self._policy

    @property
    def rules(self) -> List[PatchRule]:
        return list(self._rules)

    def lookup(self, coordinate: ArtifactCoordinate) -> List[PatchRule]:
        """
        Rules that apply to a coordinate

        Args:
            coordinate: Artifact coordinate

        Returns:
            Wildcard rules followed by exact-version rules (may be empty)
        """
        wildcard = self._wildcard.get(coordinate.key, [])
        exact = self._exact.get((coordinate.group, coordinate.name, coordinate.version), [])
        return list(wildcard) + list(exact)

    def directives_for(self, coordinate: ArtifactCoordinate) -> List[Any]:
        """All directives for a coordinate, in application order"""
        return [d for rule in self.lookup(coordinate) for d in rule.directives]

    def unused_rules(self, coordinates) -> List[PatchRule]:
        """
        Rules whose pattern matches none of the given coordinates

        Args:
            coordinates: Catalog coordinates

        Returns:
            Unused rules in declaration order
        """
        coordinates = list(coordinates)
        return [rule for rule in self._rules
                if not any(rule.pattern.matches(c) for c in coordinates)]

    def _expand_groups(self, rule: PatchRule, groups: Dict[str, List[str]]) -> PatchRule:
        """Replace RemoveDependencyGroup directives by the group's RemoveDependency directives"""
        if not rule.directives_of(RemoveDependencyGroup):
            return rule

        expanded = []
        for directive in rule.directives:
            if not isinstance(directive, RemoveDependencyGroup):
                expanded.append(directive)
                continue
            if directive.group not in groups:
                raise ConfigurationError(
                    f"Rule '{rule.target}' references unknown dependency group '{directive.group}'",
                    rule_target=rule.target
                )
            for member in groups[directive.group]:
                try:
                    expanded.append(RemoveDependency(target=member))
                except ValidationError as e:
                    raise ConfigurationError(
                        f"Dependency group '{directive.group}' contains an invalid pattern '{member}': {e}",
                        rule_target=rule.target
                    ) from e
        return rule.model_copy(update={"directives": expanded})

    def _validate(self) -> None:
        """Load-time checks; the only validation done before the pipeline runs"""
        by_key: Dict[Tuple[str, str], List[PatchRule]] = defaultdict(list)
        for rule in self._rules:
            by_key[rule.pattern.key].append(rule)

        # Export mode conflicts, per artifact: wildcard rules combined with
        # the rules of each exact version
        for key, rules in by_key.items():
            wildcard = [r for r in rules if not r.pattern.is_exact]
            versions = sorted({r.pattern.version for r in rules if r.pattern.is_exact})
            buckets = [wildcard] + [wildcard + [r for r in rules if r.pattern.version == v] for v in versions]
            for bucket in buckets:
                export_all = any(r.directives_of(ExportAllPackages) for r in bucket)
                explicit = any(r.directives_of(ExportPackage) for r in bucket)
                if export_all and explicit:
                    target = bucket[-1].target
                    raise ConfigurationError(
                        f"Rule '{target}' combines exportAllPackages() with an explicit export list",
                        rule_target=target
                    )
                if any(r.directives_of(AutomaticModule) for r in bucket) and any(r.requests_synthesis() for r in bucket):
                    target = bucket[-1].target
                    raise ConfigurationError(
                        f"Rule '{target}' combines automaticModule() with module descriptor directives",
                        rule_target=target
                    )

        merge_hosts: Dict[Tuple[str, str], PatchRule] = {}
        for rule in self._rules:
            for directive in rule.directives_of(MergeJar):
                source_key = directive.pattern.key
                if source_key == rule.pattern.key:
                    raise ConfigurationError(
                        f"Rule '{rule.target}' merges its own artifact",
                        rule_target=rule.target
                    )
                host = merge_hosts.get(source_key)
                if host is not None and host.pattern.key != rule.pattern.key:
                    raise ConfigurationError(
                        f"'{directive.source}' is merged into both '{host.target}' and '{rule.target}'",
                        rule_target=rule.target
                    )
                merge_hosts[source_key] = rule

        for source_key, host in merge_hosts.items():
            for rule in by_key.get(source_key, []):
                if rule.requests_synthesis():
                    raise ConfigurationError(
                        f"'{rule.target}' is merged into '{host.target}' and cannot have a module descriptor of its own",
                        rule_target=rule.target
                    )


def load_rule_set(path: Union[str, Path]) -> RuleSet:
    """
    Load a rule set from a JSON file

    Args:
        path: Path to the rule-set JSON document

    Returns:
        Validated rule set

    Raises:
        ConfigurationError: If the file is unreadable or a rule is malformed
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read rule set '{path}': {e}") from e
    logger.info(f"Loading rule set from {path}")
    return RuleSet.from_config(data)
