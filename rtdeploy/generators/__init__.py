# SPDX-License-Identifier: MIT
"""Deployment plan generators for rtdeploy."""

from rtdeploy.generators.generator import BaseGenerator, Generator
from rtdeploy.generators.manifest import ManifestGenerator
from rtdeploy.generators.mermaid import MermaidGenerator
from rtdeploy.generators.ninja import NinjaGenerator
from rtdeploy.generators.xcode import XcodeGenerator

GENERATORS: dict[str, type[BaseGenerator]] = {
    "manifest": ManifestGenerator,
    "ninja": NinjaGenerator,
    "xcode": XcodeGenerator,
    "mermaid": MermaidGenerator,
}


def get_generator(name: str) -> BaseGenerator:
    """Create a generator by name.

    Raises:
        ValueError: If no generator has that name.
    """
    try:
        return GENERATORS[name]()
    except KeyError:
        known = ", ".join(sorted(GENERATORS))
        raise ValueError(f"unknown generator {name!r} (known: {known})") from None


__all__ = [
    "BaseGenerator",
    "GENERATORS",
    "Generator",
    "ManifestGenerator",
    "MermaidGenerator",
    "NinjaGenerator",
    "XcodeGenerator",
    "get_generator",
]
