"""
Base for the backend clients.
Holds the retrying transport and the optional blob cache, and maps response
statuses onto the error taxonomy.
"""
from __future__ import annotations

import abc
from typing import Optional, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from shared.errors import BackendStatusError, InvalidResponseError, TransientNetworkError
from shared.utils.blob_cache import BlobCache, TypedCache
from shared.utils.http_client import RetryingHTTPClient, is_retryable_status
from shared.utils.logging import get_logger

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class BackendClient(abc.ABC):
    """Common plumbing for the match and stream backends."""

    def __init__(self, http: RetryingHTTPClient, cache: Optional[BlobCache] = None) -> None:
        self._http = http.for_backend(self.backend_name)
        self._cache = cache

    @property
    @abc.abstractmethod
    def backend_name(self) -> str:
        """Label used in logs and metrics."""

    def _typed_cache(self, name: str, value_type: object) -> Optional[TypedCache]:
        if self._cache is None:
            return None
        return self._cache.typed(name, value_type)

    def _ensure_success(self, response: httpx.Response) -> None:
        """Raise for anything but 2xx once the transport has given up retrying."""
        if response.is_success:
            return
        url = f"{response.request.url.host}{response.request.url.path}"
        if is_retryable_status(response.status_code):
            raise TransientNetworkError(
                f"{self.backend_name} still returned HTTP {response.status_code} for {url} after retries"
            )
        raise BackendStatusError(self.backend_name, response.status_code, url)

    def _parse(self, response: httpx.Response, model: type[ModelT]) -> ModelT:
        try:
            return model.model_validate_json(response.content)
        except ValidationError as exc:
            raise InvalidResponseError(
                f"{self.backend_name} returned an unreadable {model.__name__} payload"
            ) from exc
