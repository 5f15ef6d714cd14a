"""Cache decorator for source adapter operations.

The decorator is the boundary between an adapter's raw request code and its
callers: it short-circuits unconfigured sources, serves cache hits, converts
classified source failures into the operation's empty value, and writes
non-empty results through to the cache.
"""

import inspect
import logging
from collections.abc import Callable
from functools import wraps
from typing import Any, get_type_hints

from pydantic import TypeAdapter, ValidationError

from animal_atlas.sources.errors import ErrorType, SourceError

logger = logging.getLogger(__name__)


def _none() -> None:
    return None


def is_empty(value: Any) -> bool:  # noqa: ANN401
    """Whether an operation result counts as "nothing found"."""
    if value is None:
        return True
    if isinstance(value, list | dict | tuple | str):
        return len(value) == 0
    return False


def cached(
    ttl: str,
    empty: Callable[[], Any] = _none,
    cache_empty: float | None = None,
) -> Callable:
    """Cache an async adapter method's result under a deterministic key.

    The key is ``{source}_{method}_{args}``, built from the bound arguments
    (defaults applied) stripped and lowercased, so ``fetch("Lion")`` and
    ``fetch(" lion ")`` share an entry. Cached payloads are revalidated through
    a pydantic TypeAdapter of the method's return annotation.

    Args:
        ttl: Name of the TTL to use, resolved by the adapter (e.g. ``"marine"``)
        empty: Factory for the empty value returned on failure
        cache_empty: When set, empty results are cached for this fraction of the TTL

    Returns:
        Decorated coroutine function

    Example:
        @cached(ttl="marine", empty=list)
        async def fetch_distribution(self, aphia_id: int) -> list[MarineDistribution]:
            ...
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)
        adapters: dict[str, TypeAdapter] = {}

        def type_adapter() -> TypeAdapter:
            # Resolved lazily so annotations can reference names defined later
            if "result" not in adapters:
                adapters["result"] = TypeAdapter(get_type_hints(func).get("return", Any))
            return adapters["result"]

        @wraps(func)
        async def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:  # noqa: ANN401
            if not self.is_configured:
                logger.debug(
                    "Source not configured, skipping call",
                    extra={"source": self.name, "operation": func.__name__},
                )
                return empty()

            bound = signature.bind(self, *args, **kwargs)
            bound.apply_defaults()
            key = self.cache_key(func.__name__, *list(bound.arguments.values())[1:])

            hit = self.cache.get(key)
            if hit is not None:
                try:
                    return type_adapter().validate_python(hit)
                except ValidationError:
                    logger.debug("Discarding cache entry with stale shape", extra={"key": key})
                    self.cache.delete(key)

            try:
                result = await func(self, *args, **kwargs)
            except SourceError as e:
                self.log_failure(func.__name__, e)
                return empty()
            except ValidationError as e:
                malformed = SourceError(
                    f"Malformed payload: {e.error_count()} errors",
                    ErrorType.UNKNOWN,
                    source=self.name,
                )
                self.log_failure(func.__name__, malformed)
                return empty()

            if is_empty(result):
                if cache_empty:
                    ttl_ms = int(self.ttl_ms(ttl) * cache_empty)
                    self.cache.set(key, type_adapter().dump_python(empty(), mode="json"), ttl_ms)
                return empty()

            self.cache.set(key, type_adapter().dump_python(result, mode="json"), self.ttl_ms(ttl))
            return result

        return wrapper

    return decorator
