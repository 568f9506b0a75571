"""
Pydantic models for lazyseq.

Tagged pull results, declarative pipeline descriptions and performance reports.
"""

from typing import Any, Callable, List, Optional
from pydantic import BaseModel, Field, model_validator, ConfigDict
from enum import Enum


class PullResult(BaseModel):
    """Outcome of a single pull: a value, or exhaustion."""
    exhausted: bool = Field(..., description="Whether the sequence reported exhaustion")
    value: Any = Field(None, description="The pulled element; unset when exhausted")

    model_config = ConfigDict(frozen=True)

    @classmethod
    def of(cls, value: Any) -> "PullResult":
        return cls(exhausted=False, value=value)

    @classmethod
    def done(cls) -> "PullResult":
        return cls(exhausted=True)


class OperationType(str, Enum):
    """Combinators that can be applied from a pipeline description"""
    MAP = "map"
    FILTER = "filter"
    FILTER_MAP = "filter_map"
    TAKE = "take"
    SKIP = "skip"
    ENUMERATE = "enumerate"
    FLAT = "flat"


_NEEDS_FUNCTION = {OperationType.MAP, OperationType.FILTER, OperationType.FILTER_MAP}
_NEEDS_COUNT = {OperationType.TAKE, OperationType.SKIP}


class OperationSpec(BaseModel):
    """One step of a declarative pipeline."""
    type: OperationType = Field(
        ...,
        description="Combinator to apply"
    )
    function: Optional[Callable[..., Any]] = Field(
        None,
        description="Function for map, filter and filter_map steps"
    )
    count: Optional[int] = Field(
        None,
        description="Bound for take and skip steps",
        ge=0
    )

    @model_validator(mode='after')
    def check_arguments(self):
        """Each operation type carries exactly the argument it needs"""
        if self.type in _NEEDS_FUNCTION and self.function is None:
            raise ValueError(f"'{self.type.value}' requires a function")
        if self.type in _NEEDS_COUNT and self.count is None:
            raise ValueError(f"'{self.type.value}' requires a count")
        return self


class PipelineSpec(BaseModel):
    """Ordered list of operations applied to a source."""
    operations: List[OperationSpec] = Field(
        default_factory=list,
        description="Operations in application order"
    )


class PerformanceReport(BaseModel):
    """Timing and memory figures for one measured operation."""
    operation: str = Field(..., description="Name of the measured operation")
    execution_time_ms: float = Field(..., description="Wall time in milliseconds", ge=0)
    memory_usage_mb: float = Field(..., description="Peak traced memory in MB", ge=0)
    success: bool = Field(..., description="Whether the operation completed")
    result_size: Optional[int] = Field(None, description="len() of the result, when it has one")
    error: Optional[str] = Field(None, description="Error message on failure")
    timestamp: float = Field(..., description="Unix time the measurement finished")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "operation": "collect_evens",
                "execution_time_ms": 1.84,
                "memory_usage_mb": 0.02,
                "success": True,
                "result_size": 5,
                "error": None,
                "timestamp": 1704110400.0
            }
        }
    )


class PerformanceSummary(BaseModel):
    """Aggregate over every recorded measurement."""
    total_operations: int = Field(0, ge=0)
    total_time_ms: float = Field(0.0, ge=0)
    total_memory_mb: float = Field(0.0, ge=0)
    avg_time_ms: float = Field(0.0, ge=0)
    avg_memory_mb: float = Field(0.0, ge=0)
    failures: int = Field(0, ge=0)
    operations: List[PerformanceReport] = Field(default_factory=list)
