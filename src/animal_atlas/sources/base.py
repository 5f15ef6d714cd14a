"""Base class shared by every source adapter."""

import logging
from enum import Enum
from typing import Any, ClassVar

import httpx
from pydantic import BaseModel, ValidationError

from animal_atlas.config.models import CacheTtlConfig
from animal_atlas.sources.errors import ErrorType, SourceError, classify_exception, classify_status
from animal_atlas.sources.http import RetryPolicy, retry_with_backoff
from animal_atlas.utils.cache import Cache
from animal_atlas.utils.cache.decorator import is_empty

logger = logging.getLogger(__name__)


class SourceStatus(str, Enum):
    FOUND = "found"
    EMPTY = "empty"
    NOT_CONFIGURED = "not_configured"
    ERROR = "error"


class SourceDiagnosis(BaseModel):
    """Outcome of probing a single source directly, bypassing the cache."""

    source: str
    status: SourceStatus
    error_type: str | None = None
    detail: str | None = None


class SourceAdapter:
    """Wraps one external API behind cached, never-raising operations.

    Subclasses set the class attributes and implement ``fetch_by_name`` plus
    their source-specific operations, each decorated with ``@cached``.
    """

    name: ClassVar[str] = ""
    default_base_url: ClassVar[str] = ""
    requires_key: ClassVar[bool] = False
    retryable: ClassVar[bool] = False
    probe_name: ClassVar[str] = "Panthera leo"

    def __init__(
        self,
        cache: Cache,
        client: httpx.AsyncClient,
        api_key: str = "",
        base_url: str = "",
        ttl: CacheTtlConfig | None = None,
        retry_policy: RetryPolicy | None = None,
        timeout: float | None = None,
    ):
        """Initialize the adapter.

        Args:
            cache: Shared cache instance
            client: Shared HTTP client
            api_key: API key; empty means unconfigured for sources that require one
            base_url: Override for the source's base URL
            ttl: Cache TTL settings
            retry_policy: Backoff for retryable failures; ignored by sources that are
                not retryable, defaulted for those that are
            timeout: Per-request timeout in seconds, overriding the client default
        """
        self.cache = cache
        self.client = client
        self.api_key = (api_key or "").strip()
        self.base_url = (base_url or self.default_base_url).rstrip("/")
        self.ttl = ttl or CacheTtlConfig()
        self.retry_policy = (retry_policy or RetryPolicy()) if self.retryable else None
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key) or not self.requires_key

    def ttl_ms(self, kind: str) -> int:
        """Resolve a TTL name such as ``"marine"`` to milliseconds."""
        return getattr(self.ttl, f"{kind}_ms")

    def cache_key(self, operation: str, *parts: Any) -> str:  # noqa: ANN401
        """Deterministic cache key from source, operation and normalized arguments."""
        normalized = [str(part).strip().lower() for part in parts if part is not None]
        return "_".join([self.name, operation, *normalized])

    def auth_headers(self) -> dict[str, str]:
        """Headers carrying the API key, for header-authenticated sources."""
        return {}

    def auth_params(self) -> dict[str, str]:
        """Query parameters carrying the API key, for parameter-authenticated sources."""
        return {}

    def log_failure(self, operation: str, error: SourceError) -> None:
        """Log a swallowed failure; absent data (404) is expected and not logged."""
        if error.error_type is ErrorType.NOT_FOUND:
            return
        logger.debug(
            "Source request failed",
            extra={
                "source": self.name,
                "operation": operation,
                "error_type": error.error_type.value,
                "status": error.status_code,
            },
        )

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    async def _request(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """GET a path on this source, classifying every failure as a SourceError.

        Raises:
            SourceError: On transport failures and non-2xx responses
        """
        url = self._url(path)
        query = {k: v for k, v in {**(params or {}), **self.auth_params()}.items() if v is not None}
        request_headers = {**self.auth_headers(), **(headers or {})}
        effective_timeout = timeout if timeout is not None else self.timeout
        request_timeout = (
            httpx.USE_CLIENT_DEFAULT if effective_timeout is None else effective_timeout
        )

        async def attempt() -> httpx.Response:
            try:
                response = await self.client.get(
                    url, params=query, headers=request_headers, timeout=request_timeout
                )
            except httpx.HTTPError as e:
                raise classify_exception(e, self.name) from e
            if response.status_code >= 400:
                raise SourceError(
                    f"HTTP {response.status_code}",
                    classify_status(response.status_code),
                    response.status_code,
                    source=self.name,
                )
            return response

        if self.retry_policy is not None:
            return await retry_with_backoff(attempt, self.retry_policy)
        return await attempt()

    async def _get_json(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> Any:  # noqa: ANN401
        """GET and decode a JSON body. An empty body decodes to None.

        Raises:
            SourceError: On request failure or a body that is not JSON
        """
        response = await self._request(path, params=params, headers=headers, timeout=timeout)
        if not response.content.strip():
            return None
        try:
            return response.json()
        except ValueError as e:
            raise SourceError("Malformed response body", ErrorType.UNKNOWN, source=self.name) from e

    async def _get_text(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> str:
        """GET a body as text, for sources whose content type cannot be trusted."""
        response = await self._request(path, params=params, headers=headers, timeout=timeout)
        return response.text

    async def fetch_by_name(self, name: str) -> Any:  # noqa: ANN401
        """Look up the source's primary payload for an animal name."""
        raise NotImplementedError

    async def _probe(self, name: str) -> Any:  # noqa: ANN401
        """Run the primary lookup without the cache or error conversion."""
        fetch = type(self).fetch_by_name
        operation = getattr(fetch, "__wrapped__", fetch)
        return await operation(self, name)

    async def diagnose(self, name: str | None = None) -> SourceDiagnosis:
        """Probe the source directly, distinguishing misconfiguration from absence.

        Args:
            name: Name to look up; defaults to the adapter's probe name

        Returns:
            SourceDiagnosis for this source
        """
        if not self.is_configured:
            return SourceDiagnosis(source=self.name, status=SourceStatus.NOT_CONFIGURED)

        try:
            result = await self._probe(name or self.probe_name)
        except SourceError as e:
            if e.error_type is ErrorType.NOT_FOUND:
                return SourceDiagnosis(source=self.name, status=SourceStatus.EMPTY)
            return SourceDiagnosis(
                source=self.name,
                status=SourceStatus.ERROR,
                error_type=e.error_type.value,
                detail=str(e),
            )
        except ValidationError as e:
            return SourceDiagnosis(
                source=self.name,
                status=SourceStatus.ERROR,
                error_type=ErrorType.UNKNOWN.value,
                detail=f"Malformed payload: {e.error_count()} errors",
            )

        status = SourceStatus.EMPTY if is_empty(result) else SourceStatus.FOUND
        return SourceDiagnosis(source=self.name, status=status)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(base_url={self.base_url!r}, configured={self.is_configured})"
