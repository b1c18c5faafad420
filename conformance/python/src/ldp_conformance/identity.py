from __future__ import annotations

import re

from rdflib import URIRef

from . import LDPT_NAMESPACE

_GROUP_SUFFIX = "Test"
_METHOD_PREFIX = "test"
_UNSAFE = re.compile(r"[^A-Za-z0-9_.-]")


def short_group(group: str) -> str:
    """Strip any package qualifier and the conventional ``Test`` suffix from a group name."""

    name = group.rsplit(".", 1)[-1]
    if name.endswith(_GROUP_SUFFIX) and len(name) > len(_GROUP_SUFFIX):
        name = name[: -len(_GROUP_SUFFIX)]
    return name


def short_method(method: str) -> str:
    if method.startswith(_METHOD_PREFIX) and len(method) > len(_METHOD_PREFIX):
        return method[len(_METHOD_PREFIX) :]
    return method


def canonical_id(group: str, method: str) -> str:
    return f"{short_group(group)}-{short_method(method)}"


def canonical_uri(group: str, method: str) -> URIRef:
    return URIRef(LDPT_NAMESPACE + canonical_id(group, method))


def case_uri(test_id: str) -> URIRef:
    return URIRef(LDPT_NAMESPACE + test_id)


def anchor(test_id: str) -> str:
    return test_id


def group_anchor(group: str) -> str:
    return "group-" + _UNSAFE.sub("_", short_group(group))


def manifest_uri(group: str, level: str) -> URIRef:
    return URIRef(f"{LDPT_NAMESPACE}{short_group(group)}-{level}-manifest")

