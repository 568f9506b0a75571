"""
Utility functions for lazyseq.

Builds sequences from declarative pipeline descriptions and measures the time
and memory spent draining them.
"""

import gc
import inspect
import logging
import time
import tracemalloc
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Union

from .lazy import SyncSequence
from .lazy_async import AsyncSequence, AnyIterable
from .models import OperationSpec, OperationType, PerformanceReport, PerformanceSummary, PipelineSpec

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

PipelineLike = Union[PipelineSpec, Iterable[Union[OperationSpec, Dict[str, Any]]]]

# Global performance tracking
_performance_metrics: List[PerformanceReport] = []


# --------- declarative pipelines ----------
def _as_pipeline(pipeline: PipelineLike) -> PipelineSpec:
    if isinstance(pipeline, PipelineSpec):
        return pipeline
    return PipelineSpec(operations=list(pipeline))


def build_pipeline(source: Iterable[Any], pipeline: PipelineLike) -> SyncSequence:
    """
    Apply a pipeline description to source and return the resulting SyncSequence.

    Nothing is pulled from source; the returned sequence is as lazy as one
    chained by hand. Dict steps are validated into OperationSpec first, so a
    malformed step raises pydantic.ValidationError before anything is built.
    """
    spec = _as_pipeline(pipeline)
    seq = source if isinstance(source, SyncSequence) else SyncSequence(source)

    for op in spec.operations:
        if op.type == OperationType.MAP:
            seq = seq.map(op.function)
        elif op.type == OperationType.FILTER:
            seq = seq.filter(op.function)
        elif op.type == OperationType.FILTER_MAP:
            seq = seq.filter_map(op.function)
        elif op.type == OperationType.TAKE:
            seq = seq.take(op.count)
        elif op.type == OperationType.SKIP:
            seq = seq.skip(op.count)
        elif op.type == OperationType.ENUMERATE:
            seq = seq.enumerate()
        elif op.type == OperationType.FLAT:
            seq = seq.flat()

    logger.debug("Built sync pipeline with %d operations", len(spec.operations))
    return seq


def _awaiting(func: Callable[[Any], Any]) -> Callable[[Any], Awaitable[Any]]:
    """Wrap func so each call's result is awaited whenever it turns out to be awaitable."""
    async def _call(item):
        result = func(item)
        if inspect.isawaitable(result):
            result = await result
        return result
    return _call


def build_async_pipeline(source: AnyIterable[Any], pipeline: PipelineLike) -> AsyncSequence:
    """
    Async counterpart of build_pipeline().

    Functions may be plain or asynchronous: coroutine functions, objects with
    an async __call__ and lambdas returning a coroutine all work, because the
    decision to await is made on each call's result.
    """
    spec = _as_pipeline(pipeline)
    seq = source if isinstance(source, AsyncSequence) else AsyncSequence(source)

    for op in spec.operations:
        if op.type == OperationType.MAP:
            seq = seq.map(_awaiting(op.function))
        elif op.type == OperationType.FILTER:
            seq = seq.filter(_awaiting(op.function))
        elif op.type == OperationType.FILTER_MAP:
            seq = seq.filter_map(_awaiting(op.function))
        elif op.type == OperationType.TAKE:
            seq = seq.take(op.count)
        elif op.type == OperationType.SKIP:
            seq = seq.skip(op.count)
        elif op.type == OperationType.ENUMERATE:
            seq = seq.enumerate()
        elif op.type == OperationType.FLAT:
            seq = seq.flat()

    logger.debug("Built async pipeline with %d operations", len(spec.operations))
    return seq


# --------- performance measurement ----------
def _start_tracing() -> bool:
    gc.collect()
    if tracemalloc.is_tracing():
        tracemalloc.reset_peak()
        return False
    tracemalloc.start()
    return True


def _record(operation_name: str, start_time: float, result: Any = None,
            error: Optional[BaseException] = None) -> PerformanceReport:
    execution_time_ms = (time.perf_counter() - start_time) * 1000
    _, peak = tracemalloc.get_traced_memory()

    report = PerformanceReport(
        operation=operation_name,
        execution_time_ms=execution_time_ms,
        memory_usage_mb=peak / 1024 / 1024,
        success=error is None,
        result_size=len(result) if error is None and hasattr(result, "__len__") else None,
        error=str(error) if error is not None else None,
        timestamp=time.time()
    )
    _performance_metrics.append(report)

    if error is None:
        logger.info(f"{operation_name} completed in {execution_time_ms:.2f}ms")
    else:
        logger.error(f"{operation_name} failed after {execution_time_ms:.2f}ms: {error}")
    return report


def measure_performance(operation_name: str, func: Callable[..., Any], *args, **kwargs) -> PerformanceReport:
    """Call func, tracking wall time and peak traced memory. Errors are recorded, then re-raised."""
    started_tracing = _start_tracing()
    start_time = time.perf_counter()

    try:
        result = func(*args, **kwargs)
    except Exception as e:
        _record(operation_name, start_time, error=e)
        raise
    else:
        return _record(operation_name, start_time, result=result)
    finally:
        if started_tracing:
            tracemalloc.stop()


async def measure_performance_async(operation_name: str, func: Callable[..., Awaitable[Any]],
                                    *args, **kwargs) -> PerformanceReport:
    """Same as measure_performance() for a coroutine function; the coroutine is awaited."""
    started_tracing = _start_tracing()
    start_time = time.perf_counter()

    try:
        result = await func(*args, **kwargs)
    except Exception as e:
        _record(operation_name, start_time, error=e)
        raise
    else:
        return _record(operation_name, start_time, result=result)
    finally:
        if started_tracing:
            tracemalloc.stop()


def get_performance_summary() -> PerformanceSummary:
    """Get summary of all performance metrics"""
    count = len(_performance_metrics)
    if count == 0:
        return PerformanceSummary()

    total_time_ms = sum(r.execution_time_ms for r in _performance_metrics)
    total_memory_mb = sum(r.memory_usage_mb for r in _performance_metrics)
    return PerformanceSummary(
        total_operations=count,
        total_time_ms=total_time_ms,
        total_memory_mb=total_memory_mb,
        avg_time_ms=total_time_ms / count,
        avg_memory_mb=total_memory_mb / count,
        failures=sum(1 for r in _performance_metrics if not r.success),
        operations=list(_performance_metrics)
    )


def clear_performance_metrics():
    """Clear all performance metrics"""
    _performance_metrics.clear()
