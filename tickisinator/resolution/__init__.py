"""Resolution engine: store first, external resolver on ticker misses."""

from tickisinator.resolution.config import ResolutionConfig
from tickisinator.resolution.designators import (
    DesignatorError,
    parse_designator,
    validate_designator,
)
from tickisinator.resolution.schemas import (
    BatchSummary,
    Designator,
    ResolutionResult,
)
from tickisinator.resolution.service import ResolutionEngine

__all__ = [
    "BatchSummary",
    "Designator",
    "DesignatorError",
    "ResolutionConfig",
    "ResolutionEngine",
    "ResolutionResult",
    "parse_designator",
    "validate_designator",
]
