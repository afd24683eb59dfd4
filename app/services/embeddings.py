"""
Embedding client for the semantic half of the fit score.

Provider calls go through ``requests`` on a worker thread so the event loop is
never blocked; ``asyncio.wait_for`` bounds each call and propagates
cancellation to the awaiting request. Retries with backoff wrap only the
provider call.
"""
import asyncio
import hashlib
import os
import threading
from collections import OrderedDict
from typing import Optional

import numpy as np
import requests
from dotenv import load_dotenv

from app.utils.exceptions import EmbeddingError, retry_with_logging
from app.utils.logging_config import PerformanceMonitor, get_logger

load_dotenv()

logger = get_logger(__name__)

EMBED_PROVIDER = os.getenv("EMBED_PROVIDER", "huggingface").lower()
DEFAULT_MODELS = {
    "huggingface": "BAAI/bge-small-en-v1.5",
    "ollama": "nomic-embed-text",
}
EMBED_MODEL = os.getenv("EMBED_MODEL") or DEFAULT_MODELS.get(EMBED_PROVIDER, "")
HUGGINGFACE_API_KEY = os.getenv("HUGGINGFACE_API_KEY")
HF_INFERENCE_URL = os.getenv("HF_INFERENCE_URL", "https://router.huggingface.co/hf-inference")
OLLAMA = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
EMBED_TIMEOUT = float(os.getenv("EMBED_TIMEOUT", "30"))
EMBED_MAX_RETRIES = int(os.getenv("EMBED_MAX_RETRIES", "2"))
EMBED_BACKOFF_FACTOR = float(os.getenv("EMBED_BACKOFF_FACTOR", "0.5"))
EMBED_MAX_CONCURRENCY = int(os.getenv("EMBED_MAX_CONCURRENCY", "4"))
EMBED_CACHE_SIZE = int(os.getenv("EMBED_CACHE_SIZE", "0"))


def to_vector(payload) -> np.ndarray:
    """Normalize a provider payload into a 1-D float32 vector."""
    try:
        arr = np.asarray(payload, dtype=np.float32)
    except (TypeError, ValueError) as e:
        raise EmbeddingError("Malformed embedding response", details=str(e), cause=e) from e

    if arr.ndim == 2:
        # [[...]] for one sentence, or one row per token to be mean-pooled
        arr = arr[0] if arr.shape[0] == 1 else arr.mean(axis=0)
    if arr.ndim != 1 or arr.size == 0:
        raise EmbeddingError(
            "Malformed embedding response",
            details=f"Expected a non-empty vector, got shape {arr.shape}",
        )
    return arr


class EmbeddingClient:
    """Client for a named embedding model (Hugging Face Inference or Ollama)."""

    def __init__(
        self,
        provider: str = None,
        model: str = None,
        api_key: str = None,
        base_url: str = None,
        timeout: float = None,
        max_retries: int = None,
        backoff_factor: float = None,
        max_concurrency: int = None,
        cache_size: int = None,
        session: requests.Session = None,
    ):
        self.provider = (provider or EMBED_PROVIDER).lower()
        if self.provider not in DEFAULT_MODELS:
            raise ValueError(f"Unknown embedding provider: {self.provider}")

        self.model = model or (EMBED_MODEL if self.provider == EMBED_PROVIDER else DEFAULT_MODELS[self.provider])
        self.api_key = api_key if api_key is not None else HUGGINGFACE_API_KEY
        if base_url is None:
            base_url = HF_INFERENCE_URL if self.provider == "huggingface" else OLLAMA
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else EMBED_TIMEOUT
        self.max_retries = max_retries if max_retries is not None else EMBED_MAX_RETRIES
        self.backoff_factor = backoff_factor if backoff_factor is not None else EMBED_BACKOFF_FACTOR
        self.cache_size = cache_size if cache_size is not None else EMBED_CACHE_SIZE
        self.session = session or requests.Session()

        # Threading primitives: requests run on worker threads, and the client
        # outlives any single event loop.
        self._slots = threading.BoundedSemaphore(max(1, max_concurrency or EMBED_MAX_CONCURRENCY))
        self._cache: "OrderedDict[str, np.ndarray]" = OrderedDict()
        self._cache_lock = threading.Lock()

        self._embed_with_retry = retry_with_logging(
            max_attempts=self.max_retries + 1,
            backoff_factor=self.backoff_factor,
            exceptions=(EmbeddingError,),
            logger=logger,
        )(self._embed_once)

    @property
    def endpoint(self) -> str:
        if self.provider == "huggingface":
            return f"{self.base_url}/models/{self.model}/pipeline/feature-extraction"
        return f"{self.base_url}/api/embeddings"

    def _request_body(self, text: str) -> dict:
        if self.provider == "huggingface":
            return {"inputs": text}
        return {"model": self.model, "prompt": text}

    def _headers(self) -> dict:
        if self.provider == "huggingface" and self.api_key:
            return {"Authorization": f"Bearer {self.api_key}"}
        return {}

    def _extract_payload(self, data):
        if self.provider == "ollama":
            if not isinstance(data, dict) or "embedding" not in data:
                raise EmbeddingError("Malformed embedding response", details="Missing 'embedding' field")
            return data["embedding"]
        if isinstance(data, dict) and "error" in data:
            raise EmbeddingError(details=str(data["error"]), model_name=self.model)
        return data

    def _post(self, text: str) -> np.ndarray:
        """Blocking provider call; runs on a worker thread."""
        with self._slots:
            try:
                resp = self.session.post(
                    self.endpoint,
                    json=self._request_body(text),
                    headers=self._headers(),
                    timeout=self.timeout,
                )
                resp.raise_for_status()
                data = resp.json()
            except requests.HTTPError as e:
                status = e.response.status_code if e.response is not None else None
                raise EmbeddingError(details=str(e), model_name=self.model, status_code=status, cause=e) from e
            except (requests.RequestException, ValueError) as e:
                raise EmbeddingError(details=str(e), model_name=self.model, cause=e) from e
        return to_vector(self._extract_payload(data))

    async def _embed_once(self, text: str, timeout: float) -> np.ndarray:
        try:
            return await asyncio.wait_for(asyncio.to_thread(self._post, text), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise EmbeddingError(
                details=f"Embedding request timed out after {timeout}s",
                model_name=self.model,
                cause=e,
            ) from e

    def _cache_key(self, text: str) -> str:
        return hashlib.sha256(f"{self.model}\x00{text}".encode("utf-8")).hexdigest()

    def _cache_get(self, key: str) -> Optional[np.ndarray]:
        if self.cache_size <= 0:
            return None
        with self._cache_lock:
            vec = self._cache.get(key)
            if vec is not None:
                self._cache.move_to_end(key)
            return vec

    def _cache_put(self, key: str, vec: np.ndarray) -> None:
        if self.cache_size <= 0:
            return
        with self._cache_lock:
            self._cache[key] = vec
            self._cache.move_to_end(key)
            while len(self._cache) > self.cache_size:
                self._cache.popitem(last=False)

    async def embed(self, text: str, timeout: float = None) -> np.ndarray:
        """Return the embedding vector for ``text``; raises EmbeddingError on failure."""
        if not text or not text.strip():
            raise EmbeddingError(details="Cannot embed empty text", model_name=self.model)

        key = self._cache_key(text)
        cached = self._cache_get(key)
        if cached is not None:
            logger.debug(f"Embedding cache hit for {key[:12]}")
            return cached

        with PerformanceMonitor(f"embedding ({self.provider}:{self.model})", logger=logger, threshold_ms=2000):
            vec = await self._embed_with_retry(text, timeout if timeout is not None else self.timeout)

        self._cache_put(key, vec)
        return vec


_client: Optional[EmbeddingClient] = None
_client_lock = threading.Lock()


def get_embedding_client() -> EmbeddingClient:
    global _client
    with _client_lock:
        if _client is None:
            _client = EmbeddingClient()
            logger.info(f"Embedding client ready: provider={_client.provider}, model={_client.model}")
        return _client


async def get_embedding(text: str, timeout: float = None) -> np.ndarray:
    return await get_embedding_client().embed(text, timeout=timeout)
