"""Observability framework for the PIG score engine.

This module provides the tracing decorators used at the engine's edges
(adapter reads, batch scoring) and the structured logging configuration.
Pure scoring functions log through the standard ``logging`` module; the
structlog ``LoggerFactory`` below routes both through the same handlers.
"""

import asyncio
import functools
import json
import logging
import re
import sys
import time
import traceback
import uuid
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, TypeVar, cast

import structlog
from pydantic import BaseModel, ConfigDict, Field
from structlog.contextvars import bind_contextvars, unbind_contextvars

# Configure structured logging
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            ],
        ),
        structlog.processors.dict_tracebacks,
        structlog.dev.ConsoleRenderer() if sys.stderr.isatty() else structlog.processors.JSONRenderer(),  # type: ignore[list-item]
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

F = TypeVar("F", bound=Callable[..., Any])

# DSNs carry credentials
_SENSITIVE_KEY_RE = re.compile(r"(dsn|database_url|password|secret|token)", re.IGNORECASE)


def configure_logging(level: str = "INFO") -> None:
    """Attach a stderr handler to the root logger at ``level``.

    Safe to call more than once; an existing handler is reused.
    """
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind a correlation id for every log line emitted in this context.

    Returns the bound id (generated when not supplied) so a batch runner
    can echo it back to its caller.
    """
    cid = correlation_id or uuid.uuid4().hex
    bind_contextvars(correlation_id=cid)
    return cid


def clear_correlation_id() -> None:
    unbind_contextvars("correlation_id")


def _mask_scalar(value: Any) -> Any:
    if value is None:
        return None
    s = str(value)
    if len(s) <= 8:
        return "***"
    return f"{s[:4]}…{s[-3:]}"


def _redact_obj(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {k: (_mask_scalar(v) if _SENSITIVE_KEY_RE.search(str(k)) else _redact_obj(v)) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_redact_obj(i) for i in obj]
    return obj


class FunctionTrace(BaseModel):
    """Execution record for one traced call."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    function_name: str
    execution_id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    duration_ms: float | None = None

    args: list[Any] = Field(default_factory=list)
    kwargs: dict[str, Any] = Field(default_factory=dict)
    result: Any | None = None

    is_success: bool = True
    error_type: str | None = None
    error_message: str | None = None

    is_async: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)


def _serialize_value(value: Any, max_length: int = 1000) -> Any:
    """Safely serialize a value for logging.

    Args:
        value: Value to serialize
        max_length: Maximum string length for truncation

    Returns:
        Serializable representation of the value
    """
    try:
        if isinstance(value, BaseModel):
            return value.model_dump(mode="json", exclude_unset=True)

        json_str = json.dumps(value, default=str)
        if len(json_str) > max_length:
            return json_str[:max_length] + "..."
        return json.loads(json_str)

    except (TypeError, ValueError):
        str_repr = str(value)
        if len(str_repr) > max_length:
            return str_repr[:max_length] + "..."
        return str_repr


def _start_trace(
    func: Callable[..., Any],
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
    *,
    is_async: bool,
    capture_args: bool,
    max_arg_length: int,
    metadata: dict[str, Any] | None,
) -> FunctionTrace:
    name = f"{func.__module__}.{func.__qualname__}"
    trace = FunctionTrace(
        function_name=name,
        execution_id=f"{name}_{time.time_ns() // 1000}",
        is_async=is_async,
        metadata=metadata or {},
    )
    if capture_args:
        trace.args = [_redact_obj(_serialize_value(a, max_arg_length)) for a in args]
        trace.kwargs = {
            k: _mask_scalar(v) if _SENSITIVE_KEY_RE.search(k) else _redact_obj(_serialize_value(v, max_arg_length))
            for k, v in kwargs.items()
        }
    return trace


def _fail_trace(trace: FunctionTrace, exc: Exception, start: float) -> None:
    trace.duration_ms = (time.perf_counter() - start) * 1000
    trace.is_success = False
    trace.error_type = type(exc).__name__
    trace.error_message = str(exc)
    logger.error(
        f"Error in function: {trace.function_name}",
        execution_id=trace.execution_id,
        duration_ms=trace.duration_ms,
        error_type=trace.error_type,
        error_message=trace.error_message,
        traceback=traceback.format_exc(),
        args=trace.args or None,
        kwargs=trace.kwargs or None,
        **trace.metadata,
    )


def trace_wrapper(
    *,
    capture_result: bool = True,
    capture_args: bool = True,
    max_arg_length: int = 1000,
    log_level: str = "INFO",
    add_metadata: dict[str, Any] | None = None,
) -> Callable[[F], F]:
    """Decorator for function tracing with structured logs.

    Logs entry, exit with duration, and failures (re-raised) for both sync
    and async callables. An ``execution_id`` is bound through
    ``structlog.contextvars`` for the duration of the call.

    Args:
        capture_result: Whether to log the return value
        capture_args: Whether to log input arguments
        max_arg_length: Maximum length for serialized arguments
        log_level: Log level for successful executions
        add_metadata: Extra fields attached to every log line

    Returns:
        Decorated function

    Example:
        >>> @trace_wrapper(capture_result=False)
        ... async def fetch_baselines(champion: str) -> list:
        ...     ...
    """
    level = log_level.lower()

    def decorator(func: F) -> F:
        is_async = asyncio.iscoroutinefunction(func)
        trace_opts = {
            "capture_args": capture_args,
            "max_arg_length": max_arg_length,
            "metadata": add_metadata,
        }

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            trace = _start_trace(func, args, kwargs, is_async=True, **trace_opts)
            bind_contextvars(execution_id=trace.execution_id)
            logger.log(
                logging.getLevelName(level.upper()),
                f"Executing async function: {trace.function_name}",
                execution_id=trace.execution_id,
                args=trace.args or None,
                kwargs=trace.kwargs or None,
                **trace.metadata,
            )
            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                _fail_trace(trace, e, start)
                raise
            else:
                trace.duration_ms = (time.perf_counter() - start) * 1000
                if capture_result:
                    trace.result = _redact_obj(_serialize_value(result, max_arg_length))
                logger.log(
                    logging.getLevelName(level.upper()),
                    f"Successfully executed: {trace.function_name}",
                    execution_id=trace.execution_id,
                    duration_ms=trace.duration_ms,
                    result=trace.result,
                    **trace.metadata,
                )
                return result
            finally:
                unbind_contextvars("execution_id")

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            trace = _start_trace(func, args, kwargs, is_async=False, **trace_opts)
            bind_contextvars(execution_id=trace.execution_id)
            logger.log(
                logging.getLevelName(level.upper()),
                f"Executing function: {trace.function_name}",
                execution_id=trace.execution_id,
                args=trace.args or None,
                kwargs=trace.kwargs or None,
                **trace.metadata,
            )
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _fail_trace(trace, e, start)
                raise
            else:
                trace.duration_ms = (time.perf_counter() - start) * 1000
                if capture_result:
                    trace.result = _redact_obj(_serialize_value(result, max_arg_length))
                logger.log(
                    logging.getLevelName(level.upper()),
                    f"Successfully executed: {trace.function_name}",
                    execution_id=trace.execution_id,
                    duration_ms=trace.duration_ms,
                    result=trace.result,
                    **trace.metadata,
                )
                return result
            finally:
                unbind_contextvars("execution_id")

        if is_async:
            return cast(F, async_wrapper)
        return cast(F, sync_wrapper)

    return decorator


# Convenience decorators with common configurations
def trace_performance(func: F) -> F:
    """Decorator focused on timing only."""
    return trace_wrapper(capture_result=False, capture_args=False, log_level="DEBUG")(func)


def trace_adapter(func: F) -> F:
    """Decorator for adapter layer functions."""
    return trace_wrapper(
        capture_result=False,
        capture_args=True,
        log_level="INFO",
        add_metadata={"layer": "adapter"},
    )(func)
