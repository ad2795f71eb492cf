"""OpenTelemetry tracing decorators."""

import asyncio
import functools
import inspect
from collections.abc import Callable
from typing import Any, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Span

F = TypeVar("F", bound=Callable[..., Any])

# Arguments recorded on the span as "<entity>.id" when the traced call has them
RECORDED_ID_ARGUMENTS = ("order_id", "table_id", "item_id", "category_id")


def _record_failure(span: Span, error: Exception) -> None:
    span.set_attribute("success", False)
    span.set_attribute("error.type", type(error).__name__)
    span.set_attribute("error.message", str(error))
    span.record_exception(error)


def traced(span_name: str | None = None, service_name: str = "tableflow-svc") -> Callable[[F], F]:
    """Decorator that runs a function inside its own OpenTelemetry span.

    Works for both plain and async functions. Exceptions are recorded on the
    span and re-raised. Entity ids passed to the function (``order_id``,
    ``table_id``, ``item_id``, ``category_id``) are set as ``order.id``,
    ``table.id`` and so on.

    Args:
        span_name: Name for the span (defaults to the function name)
        service_name: Tracer name and ``service.name`` span attribute

    Returns:
        Decorated function with tracing

    Example:
        @traced("orders.mark_paid")
        async def mark_paid(self, order_id: str) -> Order:
            ...
    """

    def decorator(func: F) -> F:
        name = span_name or func.__name__
        tracer = trace.get_tracer(service_name)
        signature = inspect.signature(func)
        id_arguments = [arg for arg in RECORDED_ID_ARGUMENTS if arg in signature.parameters]

        def start_span() -> Any:
            return tracer.start_as_current_span(name)

        def annotate(span: Span, args: tuple[Any, ...], kwargs: dict[str, Any]) -> None:
            span.set_attribute("service.name", service_name)
            if span_name:
                span.set_attribute("function.name", func.__name__)
            if not id_arguments:
                return
            try:
                bound = signature.bind_partial(*args, **kwargs)
            except TypeError:
                return
            for arg in id_arguments:
                value = bound.arguments.get(arg)
                if isinstance(value, str):
                    span.set_attribute(f"{arg.removesuffix('_id')}.id", value)

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            with start_span() as span:
                annotate(span, args, kwargs)
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _record_failure(span, e)
                    raise
                span.set_attribute("success", True)
                return result

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with start_span() as span:
                annotate(span, args, kwargs)
                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    _record_failure(span, e)
                    raise
                span.set_attribute("success", True)
                return result

        if asyncio.iscoroutinefunction(func):
            return async_wrapper  # type: ignore
        return sync_wrapper  # type: ignore

    return decorator
