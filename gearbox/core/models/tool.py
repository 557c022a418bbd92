"""
Catalog models — tool and bundle specifications.

Loaded from ``tools.json`` / ``bundles.json`` and never mutated
afterwards. A bundle references tools and other bundles by name only.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

BUILD_PROFILES = ("minimal", "standard", "maximum")


class ToolSpec(BaseModel):
    """A single installable tool."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    category: str = ""
    repository: str = ""
    binary_name: str = ""
    language: str = ""
    build_types: Mapping[str, str] = Field(default_factory=lambda: MappingProxyType({}))
    dependencies: tuple[str, ...] = ()
    min_version: str = ""
    shell_integration: bool = False
    test_command: str = ""

    @property
    def binary(self) -> str:
        """Binary looked up on PATH (falls back to the tool name)."""
        return self.binary_name or self.name

    @field_validator("build_types")
    @classmethod
    def _freeze_build_types(cls, value: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(value))

    @field_serializer("build_types")
    def _dump_build_types(self, value: Mapping[str, str]) -> dict[str, str]:
        return dict(value)


class BundleSpec(BaseModel):
    """A named group of tools and/or other bundles."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    category: str = ""
    tools: tuple[str, ...] = ()
    includes_bundles: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    system_packages: tuple[str, ...] = ()
    package_managers: Mapping[str, tuple[str, ...]] = Field(default_factory=lambda: MappingProxyType({}))

    @field_validator("package_managers")
    @classmethod
    def _freeze_package_managers(
        cls, value: Mapping[str, tuple[str, ...]]
    ) -> Mapping[str, tuple[str, ...]]:
        return MappingProxyType(dict(value))

    @field_serializer("package_managers")
    def _dump_package_managers(self, value: Mapping[str, tuple[str, ...]]) -> dict[str, list[str]]:
        return {manager: list(packages) for manager, packages in value.items()}


class LanguageSpec(BaseModel):
    """Toolchain requirements for a build language."""

    model_config = ConfigDict(frozen=True)

    min_version: str = ""
    build_tool: str = ""


class ToolsDocument(BaseModel):
    """Root of ``tools.json``."""

    schema_version: str = "1.0"
    default_build_type: str = "standard"
    tools: list[ToolSpec] = Field(default_factory=list)
    categories: dict[str, str] = Field(default_factory=dict)
    languages: dict[str, LanguageSpec] = Field(default_factory=dict)


class BundlesDocument(BaseModel):
    """Root of ``bundles.json``."""

    schema_version: str = "1.0"
    bundles: list[BundleSpec] = Field(default_factory=list)
