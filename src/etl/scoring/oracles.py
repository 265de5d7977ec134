"""Scoring oracle interface and HTTP adapter.

An oracle is a black-box function ``score(text) -> int`` in [0, 100].
Failures are signalled by raising OracleError, never by a sentinel value.
"""

import logging
from abc import ABC, abstractmethod
from types import TracebackType
from typing import Any, Self

import httpx

from src.etl.exceptions import OracleError, OracleResponseError
from src.settings import EnsembleSettings

logger = logging.getLogger(__name__)


def validate_oracle_value(value: Any) -> int:
    """Check an oracle value is an integer score in [0, 100].

    Zero is a valid score.

    Args:
        value: Raw value returned by an oracle.

    Returns:
        The score as int.

    Raises:
        OracleResponseError: Value missing, not integral, or out of range.
    """
    if isinstance(value, bool) or value is None:
        raise OracleResponseError(f"Oracle returned no usable score: {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise OracleResponseError(f"Oracle score is not an integer: {value!r}")
        value = int(value)
    if not isinstance(value, int):
        raise OracleResponseError(f"Oracle score has wrong type: {type(value).__name__}")
    if not 0 <= value <= 100:
        raise OracleResponseError(f"Oracle score out of range: {value}")
    return value


class ScoringOracle(ABC):
    """Abstract scoring oracle.

    Attributes:
        name: Oracle identifier used in logs and results.
    """

    def __init__(self, name: str) -> None:
        self.name = name

    @abstractmethod
    async def score(self, text: str) -> int:
        """Score review text.

        Args:
            text: Review text.

        Returns:
            Score in [0, 100].

        Raises:
            OracleError: The call failed.
        """

    async def aclose(self) -> None:
        """Release resources held by the oracle."""
        return None


class HttpScoringOracle(ScoringOracle):
    """Oracle backed by an HTTP endpoint.

    Sends ``{"text": ...}`` as JSON and expects ``{"score": int}`` back.
    """

    def __init__(
        self,
        name: str,
        url: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize HTTP oracle.

        Args:
            name: Oracle identifier.
            url: Scoring endpoint.
            timeout: Request timeout (seconds).
            client: Shared AsyncClient; one is created when omitted.
        """
        super().__init__(name)
        self._url = url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def score(self, text: str) -> int:
        try:
            response = await self._client.post(self._url, json={"text": text})
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise OracleError(f"{self.name}: HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise OracleError(f"{self.name}: {type(e).__name__}: {e}") from e
        except ValueError as e:
            raise OracleResponseError(f"{self.name}: invalid JSON response") from e

        if not isinstance(payload, dict) or "score" not in payload:
            raise OracleResponseError(f"{self.name}: response has no 'score' field")
        return validate_oracle_value(payload["score"])

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def build_http_oracles(
    config: EnsembleSettings,
) -> tuple[HttpScoringOracle, HttpScoringOracle, HttpScoringOracle] | None:
    """Create primary, secondary and tiebreaker oracles from settings.

    Args:
        config: Ensemble settings with oracle URLs.

    Returns:
        Oracle triple, or None when any endpoint is missing.
    """
    if not config.is_configured:
        logger.info("Oracle endpoints not configured, ensemble scoring disabled")
        return None
    return (
        HttpScoringOracle("primary", config.primary_url or "", config.timeout),
        HttpScoringOracle("secondary", config.secondary_url or "", config.timeout),
        HttpScoringOracle("tiebreaker", config.tiebreaker_url or "", config.timeout),
    )
