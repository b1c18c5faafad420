"""The static table of every known test.

Descriptors are registered once, before any outcome is collected, either from
a declarative catalog document (YAML or JSON) or through :class:`CatalogBuilder`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any, Iterable, Iterator

from ruamel.yaml import YAMLError

from .documents import load_document, load_yaml_stream
from .errors import CatalogFormatError, DuplicateIdError, SelfCoverageError
from .identity import short_group
from .model import (
    CoverageSpec,
    ImplementationMethod,
    RequirementLevel,
    ReviewStatus,
    TestDescriptor,
)
from .schemas import registry

logger = logging.getLogger(__name__)

_DEFAULT_CATALOG = "ldp-catalog.yaml"


@dataclass(frozen=True, slots=True)
class GroupInfo:
    name: str
    title: str | None = None
    description: str | None = None


class MetadataCatalog:
    def __init__(self, descriptors: Iterable[TestDescriptor] = ()) -> None:
        self._by_id: dict[str, TestDescriptor] = {}
        self._groups: dict[str, GroupInfo] = {}
        for descriptor in descriptors:
            self.register(descriptor)

    def register(self, descriptor: TestDescriptor) -> TestDescriptor:
        test_id = descriptor.test_id
        existing = self._by_id.get(test_id)
        if existing is not None:
            raise DuplicateIdError(
                test_id,
                existing=f"{existing.group}.{existing.method}",
                incoming=f"{descriptor.group}.{descriptor.method}",
            )
        _check_coverage(descriptor)
        self._by_id[test_id] = descriptor
        self._groups.setdefault(descriptor.group, GroupInfo(name=descriptor.group))
        return descriptor

    def describe_group(self, name: str, *, title: str | None = None, description: str | None = None) -> None:
        self._groups[name] = GroupInfo(name=name, title=title, description=description)

    def all(self) -> Iterable[TestDescriptor]:
        return _CatalogView(self._by_id)

    def get(self, test_id: str) -> TestDescriptor | None:
        return self._by_id.get(test_id)

    def groups(self) -> list[str]:
        return list(self._groups)

    def group_info(self, name: str) -> GroupInfo:
        return self._groups.get(name) or GroupInfo(name=name)

    def in_groups(self, groups: Iterable[str]) -> list[TestDescriptor]:
        """Descriptors declared in any of groups, matched by full or short name."""

        names = set(groups)
        wanted = names | {short_group(g) for g in names}
        return [d for d in self._by_id.values() if d.group in wanted or short_group(d.group) in wanted]

    def __contains__(self, test_id: object) -> bool:
        return test_id in self._by_id

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self) -> Iterator[TestDescriptor]:
        return iter(list(self._by_id.values()))


class _CatalogView:
    """Restartable iteration over the catalog in registration order."""

    def __init__(self, by_id: dict[str, TestDescriptor]) -> None:
        self._by_id = by_id

    def __iter__(self) -> Iterator[TestDescriptor]:
        return iter(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)


def _check_coverage(descriptor: TestDescriptor) -> None:
    if descriptor.is_indirect:
        if descriptor.coverage is None or not descriptor.coverage.groups:
            raise CatalogFormatError(f"Indirect test {descriptor.test_id!r} has no covering groups")
        own = {descriptor.group, short_group(descriptor.group)}
        for group in descriptor.coverage.groups:
            if group in own or short_group(group) in own:
                raise SelfCoverageError(descriptor.test_id, group)
    elif descriptor.coverage is not None:
        raise CatalogFormatError(
            f"Test {descriptor.test_id!r} declares coverage but is not implemented indirectly"
        )


class CatalogBuilder:
    """Programmatic construction of a catalog, one group at a time.

    >>> catalog = (
    ...     CatalogBuilder()
    ...     .group("ResourceTest", title="Resources")
    ...     .test("testGet", levels=["MUST"], implementation="automated")
    ...     .build()
    ... )
    """

    def __init__(self) -> None:
        self._catalog = MetadataCatalog()
        self._group: str | None = None

    def group(self, name: str, *, title: str | None = None, description: str | None = None) -> "CatalogBuilder":
        self._catalog.describe_group(name, title=title, description=description)
        self._group = name
        return self

    def test(
        self,
        method: str,
        *,
        levels: Iterable[str] = (),
        status: str | ReviewStatus = ReviewStatus.APPROVED,
        implementation: str | ImplementationMethod = ImplementationMethod.AUTOMATED,
        spec_ref: str | None = None,
        description: str | None = None,
        covered_by: tuple[Iterable[str], Iterable[str]] | None = None,
        enabled: bool = True,
        tags: Iterable[str] = (),
    ) -> "CatalogBuilder":
        if self._group is None:
            raise CatalogFormatError(f"Test {method!r} added before any group")
        parsed_levels, extra_tags = RequirementLevel.parse_all(levels)
        coverage = None
        if covered_by is not None:
            groups, covering_levels = covered_by
            coverage = CoverageSpec.parse(groups, covering_levels)
        self._catalog.register(
            TestDescriptor(
                group=self._group,
                method=method,
                levels=parsed_levels,
                status=ReviewStatus(status),
                implementation=ImplementationMethod(implementation),
                spec_ref=spec_ref,
                description=description,
                tags=tuple(dict.fromkeys([*extra_tags, *tags])),
                enabled=enabled,
                coverage=coverage,
            )
        )
        return self

    def build(self) -> MetadataCatalog:
        return self._catalog


def catalog_from_document(document: Any, *, source: str = "<catalog>") -> MetadataCatalog:
    errors = registry().validate(document, schema="catalog.schema.json")
    if errors:
        raise CatalogFormatError(f"Invalid catalog {source}", errors=errors)

    catalog = MetadataCatalog()
    for group in document.get("groups") or []:
        name = group["name"]
        catalog.describe_group(name, title=group.get("title"), description=group.get("description"))
        for entry in group.get("tests") or []:
            catalog.register(TestDescriptor.from_dict(entry, group=name))
    logger.debug("Loaded %d descriptors in %d groups from %s", len(catalog), len(catalog.groups()), source)
    return catalog


def load_catalog(path: Path) -> MetadataCatalog:
    path = Path(path)
    try:
        document = load_document(path)
    except (OSError, ValueError, YAMLError) as exc:
        raise CatalogFormatError(f"Cannot read catalog {path}: {exc}") from exc
    return catalog_from_document(document, source=str(path))


def default_catalog() -> MetadataCatalog:
    """The catalog of the LDP 1.0 test suite shipped with the package."""

    resource = resources.files("ldp_conformance._data").joinpath(_DEFAULT_CATALOG)
    document = load_yaml_stream(resource.read_text(encoding="utf-8"))
    return catalog_from_document(document, source=_DEFAULT_CATALOG)
