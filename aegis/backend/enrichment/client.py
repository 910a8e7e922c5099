"""
enrichment/client.py

OllamaGateway — async Ollama HTTP client implementing EnrichmentGateway.

Responsibilities:
  - Rate-limit calls (sliding 60 s window)
  - POST to Ollama /api/chat with the batch prompt
  - Parse and validate the JSON response into Corrections
  - Raise EnrichmentError on transport or parse failure; the orchestrator
    turns that into "no corrections" for the cycle

Usage:
    gateway = OllamaGateway(base_url="http://localhost:11434", model="phi3:3.8b")
    corrections = await gateway.classify(batch)
"""

from __future__ import annotations

import logging
from typing import Sequence

import httpx

from ..models import Correction, Packet
from .gatekeeper import RateLimiter
from .gateway import EnrichmentError, EnrichmentGateway
from .prompt_builder import build_prompt
from .validator import validate_classification_response

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT_SECONDS = 8.0


class OllamaGateway(EnrichmentGateway):
    """
    Args:
        base_url:             Ollama server URL, e.g. "http://localhost:11434"
        model:                Ollama model tag, e.g. "phi3:3.8b" or "mistral"
        timeout:              Per-request HTTP timeout in seconds
        max_calls_per_minute: Rate limit; 0 disables it
        transport:            Optional httpx transport (tests use MockTransport)
    """

    name = "ollama"

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "phi3:3.8b",
        timeout: float = _DEFAULT_TIMEOUT_SECONDS,
        max_calls_per_minute: int = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._limiter = RateLimiter(max_calls_per_minute=max_calls_per_minute)
        self._transport = transport
        self._available: bool | None = None  # None = not yet checked
        self.stats: dict[str, int] = {
            "calls_made": 0,
            "rate_limited": 0,
            "timeouts": 0,
            "transport_errors": 0,
            "parse_errors": 0,
            "corrections_returned": 0,
        }

    @property
    def available(self) -> bool | None:
        return self._available

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def classify(self, batch: Sequence[Packet]) -> list[Correction]:
        """Return refined scores for (a subset of) batch. Raises EnrichmentError on failure."""
        if not batch:
            return []

        if not self._limiter.try_acquire():
            self.stats["rate_limited"] += 1
            logger.debug("Classifier call skipped for %d packet(s): rate limited", len(batch))
            return []

        system_prompt, user_prompt = build_prompt(batch)

        self.stats["calls_made"] += 1
        raw_response = await self._call_ollama(system_prompt, user_prompt)

        corrections = validate_classification_response(
            raw_response, known_ids={p.id for p in batch}
        )
        if corrections is None:
            self.stats["parse_errors"] += 1
            raise EnrichmentError("classifier output failed validation")

        self.stats["corrections_returned"] += len(corrections)
        logger.info(
            "Classifier refined %d of %d packet(s) (model=%s)",
            len(corrections), len(batch), self.model,
        )
        return corrections

    async def health_check(self) -> bool:
        """Return True if Ollama is reachable. Never raises."""
        try:
            async with self._client(timeout=3.0) as client:
                resp = await client.get(f"{self.base_url}/api/tags")
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            if self._available is not False:
                logger.info("Ollama not reachable at %s: %s", self.base_url, exc)
            self._available = False
            return False

        entries = data.get("models", []) if isinstance(data, dict) else []
        models = [m.get("name", "") for m in entries if isinstance(m, dict)]
        # Accept prefix match: "phi3:3.8b" matches "phi3:mini"
        model_prefix = self.model.split(":")[0]
        if not any(m == self.model or m.startswith(model_prefix) for m in models):
            logger.warning(
                "Ollama running but model %r not found. Run: ollama pull %s",
                self.model, self.model,
            )
        self._available = True
        return True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    async def _call_ollama(self, system_prompt: str, user_prompt: str) -> str:
        """POST to Ollama /api/chat and return the message content."""
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user",   "content": user_prompt},
            ],
            "stream": False,
            "format": "json",
            "options": {
                "temperature": 0.1,   # Low temperature for consistent JSON output
            },
        }

        try:
            async with self._client(timeout=self.timeout) as client:
                resp = await client.post(f"{self.base_url}/api/chat", json=payload)
                resp.raise_for_status()
                data = resp.json()
        except httpx.TimeoutException as exc:
            self.stats["timeouts"] += 1
            raise EnrichmentError(f"Ollama call timed out after {self.timeout:.1f}s") from exc
        except (httpx.HTTPError, ValueError) as exc:
            self.stats["transport_errors"] += 1
            self._available = False
            raise EnrichmentError(f"Ollama call failed: {exc}") from exc

        self._available = True
        # Ollama /api/chat response: {"message": {"content": "..."}}
        content = data.get("message", {}).get("content", "") if isinstance(data, dict) else ""
        if not content:
            self.stats["parse_errors"] += 1
            raise EnrichmentError("Ollama returned an empty message")
        return content
