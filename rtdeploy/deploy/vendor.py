# SPDX-License-Identifier: MIT
"""Vendor artifact registry.

Some third-party libraries ship prebuilt runtime DLLs next to their sources
instead of producing them as build targets. A VendorArtifactRule names such
a library by a regular expression and lists the files to propagate,
relative to a directory derived from the matching target.

Example:
    registry = VendorRegistry()
    registry.add(
        VendorArtifactRule(
            "acme",
            pattern="acme",
            base_dir="../bin",
            artifacts=["acme_rt.dll"],
        )
    )
    paths = registry.artifacts_for(closure)
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from rtdeploy.core.errors import GraphError

if TYPE_CHECKING:
    from rtdeploy.core.closure import ClosureSet
    from rtdeploy.core.graph import Graph
    from rtdeploy.core.target import Target

logger = logging.getLogger(__name__)


def _exists(path: Path) -> bool:
    return path.exists()


@dataclass
class VendorArtifactRule:
    """A set of prebuilt artifacts shipped with a third-party library.

    Attributes:
        name: Rule name, for logging.
        pattern: Regular expression matched (search) against target and
            package names.
        base_dir: Directory holding the artifacts, relative to the base.
        artifacts: Artifact paths relative to base_dir.
        base: Target attribute the base directory is taken from,
            "source_dir" or "binary_dir".
        locate: Predicate deciding whether an artifact is present.
    """

    name: str
    pattern: str
    base_dir: str = "."
    artifacts: list[str] = field(default_factory=list)
    base: str = "source_dir"
    locate: Callable[[Path], bool] = _exists

    def __post_init__(self) -> None:
        if self.base not in ("source_dir", "binary_dir"):
            raise GraphError(
                f"vendor rule {self.name}: base must be 'source_dir' or "
                f"'binary_dir', not {self.base!r}"
            )
        try:
            self._regex = re.compile(self.pattern)
        except re.error as e:
            raise GraphError(f"vendor rule {self.name}: bad pattern: {e}") from e

    def matches(self, name: str) -> bool:
        return self._regex.search(name) is not None

    def directory_for(self, target: Target) -> Path | None:
        base = getattr(target, self.base)
        if base is None:
            return None
        return Path(base) / self.base_dir

    def candidates(self, target: Target) -> list[Path]:
        """Artifact paths this rule would propagate for a target."""
        directory = self.directory_for(target)
        if directory is None:
            return []
        return [directory / artifact for artifact in self.artifacts]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VendorArtifactRule:
        if "name" not in data:
            raise GraphError(f"vendor rule without a name: {data!r}")
        return cls(
            name=data["name"],
            pattern=data.get("pattern", data["name"]),
            base_dir=data.get("base_dir", "."),
            artifacts=list(data.get("artifacts", [])),
            base=data.get("base", "source_dir"),
        )


class VendorRegistry:
    """Ordered, extendable list of vendor artifact rules."""

    def __init__(self, rules: Iterable[VendorArtifactRule] = ()) -> None:
        self._rules: list[VendorArtifactRule] = list(rules)

    def add(self, rule: VendorArtifactRule) -> VendorArtifactRule:
        self._rules.append(rule)
        return rule

    @property
    def rules(self) -> list[VendorArtifactRule]:
        return list(self._rules)

    def __iter__(self) -> Iterator[VendorArtifactRule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def artifacts_for(self, closure: ClosureSet) -> list[Path]:
        """Existing vendor artifacts needed by a closure.

        Every visited target is matched by its name and, if it has one,
        its package name. The root is considered too, since a root may
        itself wrap a vendor library.

        Returns:
            Existing artifact paths, deduplicated, in rule order.
        """
        found: list[Path] = []
        seen: set[Path] = set()
        targets = [closure.root, *closure.visited]
        for rule in self._rules:
            for target in targets:
                names = [target.name] + ([target.package] if target.package else [])
                if not any(rule.matches(n) for n in names):
                    continue
                for path in rule.candidates(target):
                    if path in seen:
                        continue
                    seen.add(path)
                    if rule.locate(path):
                        logger.debug("Vendor rule %s: %s", rule.name, path)
                        found.append(path)
                    else:
                        logger.debug(
                            "Vendor rule %s: %s not present, skipping", rule.name, path
                        )
        return found

    @classmethod
    def from_graph(
        cls, graph: Graph, *, include_defaults: bool = True
    ) -> VendorRegistry:
        """Registry with the default rules plus those declared by the graph."""
        registry = default_registry() if include_defaults else cls()
        for data in graph.vendor_rules:
            registry.add(VendorArtifactRule.from_dict(data))
        return registry


def dpp_rule() -> VendorArtifactRule:
    """Discord++ ships its Windows runtime DLLs in a sibling win32/bin directory."""
    return VendorArtifactRule(
        name="dpp",
        pattern="dpp",
        base_dir="../win32/bin",
        artifacts=[
            "libcrypto-1_1-x64.dll",
            "libssl-1_1-x64.dll",
            "libsodium.dll",
            "opus.dll",
            "zlib1.dll",
        ],
    )


def default_registry() -> VendorRegistry:
    """A registry holding the built-in vendor rules."""
    return VendorRegistry([dpp_rule()])
