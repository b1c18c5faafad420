from __future__ import annotations

__all__ = [
    "__version__",
    "NAME",
    "SPEC_URI",
    "LDPT_NAMESPACE",
    "MetadataCatalog",
    "OutcomeCollector",
    "ReportEngine",
    "ReportSettings",
    "canonical_id",
]

__version__ = "0.3.0"
NAME = "LDP Test Suite"
SPEC_URI = "http://www.w3.org/TR/ldp"
LDPT_NAMESPACE = "http://w3c.github.io/ldp-testsuite#"

from .catalog import MetadataCatalog  # noqa: E402
from .collector import OutcomeCollector  # noqa: E402
from .config import ReportSettings  # noqa: E402
from .engine import ReportEngine  # noqa: E402
from .identity import canonical_id  # noqa: E402
