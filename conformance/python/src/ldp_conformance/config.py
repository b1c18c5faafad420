"""Report configuration loaded from YAML or JSON and validated with pydantic."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Sequence

from pydantic import BaseModel, Field, ValidationError, field_validator
from ruamel.yaml import YAMLError

from . import NAME, __version__
from .catalog import GroupInfo
from .documents import deep_merge, load_document
from .errors import ConfigError
from .model import LEVEL_ORDER

logger = logging.getLogger(__name__)


class DeveloperSettings(BaseModel):
    name: str | None = None
    mbox: str | None = None
    homepage: str | None = None

    model_config = {"extra": "forbid"}


class SubjectSettings(BaseModel):
    """The server implementation under test."""

    uri: str | None = None
    name: str | None = None
    homepage: str | None = None
    language: str | None = None
    description: str | None = None
    developer: DeveloperSettings | None = None

    model_config = {"extra": "forbid"}


class AssertorSettings(BaseModel):
    uri: str | None = None
    title: str = NAME
    homepage: str | None = "https://github.com/w3c/ldp-testsuite"
    version: str | None = __version__

    model_config = {"extra": "forbid"}


class GroupSettings(BaseModel):
    title: str | None = None
    description: str | None = None

    model_config = {"extra": "forbid"}


class ReportSettings(BaseModel):
    output_dir: Path = Path("report")
    earl_basename: str = "ldp-testsuite-execution-report-earl"
    manifest_basename: str = "ldp-earl-manifest"
    dashboard_filename: str = "LdpTestSuiteHtmlReport.html"
    coverage_filename: str = "LdpTestCasesHtmlReport.html"
    report_title: str = f"{NAME} Execution Report"
    levels: list[str] = Field(default_factory=lambda: [level.value for level in LEVEL_ORDER])
    groups: dict[str, GroupSettings] = Field(default_factory=dict)
    included_groups: list[str] = Field(default_factory=list)
    excluded_groups: list[str] = Field(default_factory=list)
    subject: SubjectSettings = Field(default_factory=SubjectSettings)
    assertor: AssertorSettings = Field(default_factory=AssertorSettings)

    model_config = {"extra": "forbid"}

    @field_validator("levels")
    @classmethod
    def levels_known(cls, v: list[str]) -> list[str]:
        known = {level.value for level in LEVEL_ORDER}
        normalized = [item.strip().upper() for item in v]
        unknown = [item for item in normalized if item not in known]
        if unknown:
            raise ValueError(f"unknown requirement levels: {', '.join(unknown)}")
        return list(dict.fromkeys(normalized))

    @field_validator("groups", mode="before")
    @classmethod
    def groups_from_strings(cls, v: Any) -> Any:
        # "Title:Description" is accepted as shorthand for a group entry.
        if not isinstance(v, Mapping):
            return v
        out: dict[str, Any] = {}
        for name, entry in v.items():
            if isinstance(entry, str):
                title, sep, description = entry.partition(":")
                out[name] = {"title": title.strip() or None, "description": description.strip() if sep else None}
            else:
                out[name] = entry
        return out

    @field_validator("earl_basename", "manifest_basename", "dashboard_filename", "coverage_filename")
    @classmethod
    def plain_file_name(cls, v: str) -> str:
        v = v.strip()
        if not v or "/" in v or "\\" in v:
            raise ValueError("must be a plain file name")
        return v

    def group_info(self) -> dict[str, GroupInfo]:
        return {
            name: GroupInfo(name=name, title=entry.title, description=entry.description)
            for name, entry in self.groups.items()
        }


def settings_from_mapping(data: Mapping[str, Any], overrides: Sequence[Mapping[str, Any]] = ()) -> ReportSettings:
    merged = deep_merge(dict(data), overrides)
    try:
        return ReportSettings.model_validate(merged)
    except ValidationError as exc:
        messages = [
            f"{'.'.join(str(part) for part in err['loc']) or '$'}: {err['msg']}"
            for err in exc.errors()
        ]
        raise ConfigError("Invalid report configuration: " + "; ".join(messages)) from exc


def load_settings(path: Path | None = None, overrides: Sequence[Mapping[str, Any]] = ()) -> ReportSettings:
    data: Any = {}
    if path is not None:
        path = Path(path)
        try:
            data = load_document(path)
        except (OSError, ValueError, YAMLError) as exc:
            raise ConfigError(f"Cannot read configuration {path}: {exc}") from exc
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise ConfigError(f"Configuration {path} must be a mapping")
        logger.debug("Loaded configuration from %s", path)
    return settings_from_mapping(data, overrides)
