"""Oracle ensemble scorer.

Combines independent oracle judgments into one score and a confidence:

- Primary: oracle A, retried with exponential backoff; oracle B takes
  over as primary once A is exhausted.
- Secondary: an independent oracle B call, run concurrently with A.
- Disagreement < 10: primary wins (high). 10-19: rounded mean (medium).
  >= 20: oracle C breaks the tie with the median of three (low, flagged).
"""

import asyncio
import logging
import statistics
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from src.etl.exceptions import OracleError, OracleUnavailableError
from src.etl.scoring.buckets import round_half_up
from src.etl.scoring.oracles import ScoringOracle, validate_oracle_value
from src.etl.scoring.schemas import Confidence, EnsembleResult
from src.settings import EnsembleSettings, settings

logger = logging.getLogger(__name__)


# =============================================================================
# ORACLE CALL RESULT
# =============================================================================


@dataclass(frozen=True)
class OracleResult:
    """Result-or-error of one (retried) oracle call.

    Attributes:
        oracle: Oracle name.
        value: Score, None on failure. Zero is a valid score.
        error: Failure description, None on success.
        attempts: Attempts made.
    """

    oracle: str
    value: int | None = None
    error: str | None = None
    attempts: int = 1

    @property
    def ok(self) -> bool:
        """True when the call produced a score."""
        return self.value is not None


# =============================================================================
# ENSEMBLE STATISTICS
# =============================================================================


@dataclass
class EnsembleStats:
    """Statistics for ensemble scoring.

    Attributes:
        scored: Texts scored successfully.
        high: Results with high confidence.
        medium: Results with medium confidence.
        low: Results with low confidence.
        fallbacks: Times oracle B replaced an exhausted oracle A.
        tiebreaks: Times oracle C was called.
        failures: Texts left without a score.
    """

    scored: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    fallbacks: int = 0
    tiebreaks: int = 0
    failures: int = 0

    def record(self, result: EnsembleResult) -> None:
        """Count a finished result."""
        self.scored += 1
        if result.confidence == Confidence.HIGH:
            self.high += 1
        elif result.confidence == Confidence.MEDIUM:
            self.medium += 1
        else:
            self.low += 1
        if result.used_fallback:
            self.fallbacks += 1
        if result.tiebreaker_score is not None:
            self.tiebreaks += 1

    def log_summary(self) -> None:
        """Log ensemble statistics summary."""
        logger.info(
            "Ensemble: %d scored (high=%d, medium=%d, low=%d), fallbacks=%d, tiebreaks=%d, failures=%d",
            self.scored,
            self.high,
            self.medium,
            self.low,
            self.fallbacks,
            self.tiebreaks,
            self.failures,
        )


# =============================================================================
# ENSEMBLE SCORER
# =============================================================================


class EnsembleScorer:
    """Scores text with three independent oracles.

    Attributes:
        stats: Scoring statistics.
    """

    def __init__(
        self,
        primary: ScoringOracle,
        secondary: ScoringOracle,
        tiebreaker: ScoringOracle,
        config: EnsembleSettings | None = None,
        wait: wait_base | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        """Initialize scorer.

        Args:
            primary: Oracle A.
            secondary: Oracle B (secondary and fallback).
            tiebreaker: Oracle C.
            config: Thresholds and retry settings (default: global settings).
            wait: tenacity wait strategy (default: exponential 1s, 2s, 4s cap).
            sleep: Async sleep used between attempts (default: asyncio.sleep).
        """
        self._primary = primary
        self._secondary = secondary
        self._tiebreaker = tiebreaker
        self._config = config or settings.ensemble
        self._wait = wait or wait_exponential(
            multiplier=self._config.backoff_multiplier,
            max=self._config.backoff_max,
        )
        self._sleep = sleep
        self.stats = EnsembleStats()

    # =========================================================================
    # Public API
    # =========================================================================

    async def score(self, text: str) -> EnsembleResult:
        """Score one text with the ensemble.

        Args:
            text: Review text.

        Returns:
            EnsembleResult with final score and confidence.

        Raises:
            OracleUnavailableError: Oracle A and the fallback call both failed.
        """
        primary, secondary = await asyncio.gather(
            self._call(self._primary, text),
            self._call(self._secondary, text),
        )

        used_fallback = False
        if primary.value is None:
            logger.warning(
                "Oracle %s exhausted (%s), falling back to %s",
                primary.oracle,
                primary.error,
                self._secondary.name,
            )
            primary = await self._call(self._secondary, text)
            used_fallback = True

        if primary.value is None:
            self.stats.failures += 1
            raise OracleUnavailableError(
                f"No oracle score: {self._primary.name} and fallback {self._secondary.name} failed"
            )

        result = await self._combine(primary.value, primary.oracle, secondary, used_fallback, text)
        self.stats.record(result)
        return result

    def reset_stats(self) -> None:
        """Reset statistics for a new batch."""
        self.stats = EnsembleStats()

    # =========================================================================
    # Internal Methods
    # =========================================================================

    async def _combine(
        self,
        p: int,
        primary_oracle: str,
        secondary: OracleResult,
        used_fallback: bool,
        text: str,
    ) -> EnsembleResult:
        """Apply agreement thresholds to the primary and secondary scores.

        Args:
            p: Primary score.
            primary_oracle: Name of the oracle that produced it.
            secondary: Independent secondary call result.
            used_fallback: Whether the primary came from the fallback call.
            text: Review text, for the tiebreaker.

        Returns:
            Combined EnsembleResult.
        """
        s = secondary.value
        if s is None:
            logger.warning("Secondary oracle failed (%s), keeping primary score only", secondary.error)
            return EnsembleResult(
                primary_score=p,
                final_score=p,
                confidence=Confidence.LOW,
                flag_for_review=True,
                primary_oracle=primary_oracle,
                used_fallback=used_fallback,
            )

        disagreement = abs(p - s)
        common = {
            "primary_score": p,
            "secondary_score": s,
            "disagreement": disagreement,
            "primary_oracle": primary_oracle,
            "used_fallback": used_fallback,
        }

        if disagreement < self._config.agreement_threshold:
            return EnsembleResult(final_score=p, confidence=Confidence.HIGH, **common)

        if disagreement < self._config.tiebreak_threshold:
            return EnsembleResult(
                final_score=round_half_up((p + s) / 2),
                confidence=Confidence.MEDIUM,
                **common,
            )

        tiebreak = await self._call(self._tiebreaker, text)
        t = tiebreak.value
        if t is None:
            logger.warning("Tiebreaker failed (%s), using mean of %d and %d", tiebreak.error, p, s)
            return EnsembleResult(
                final_score=round_half_up((p + s) / 2),
                confidence=Confidence.LOW,
                flag_for_review=True,
                **common,
            )

        return EnsembleResult(
            tiebreaker_score=t,
            final_score=int(statistics.median((p, s, t))),
            confidence=Confidence.LOW,
            flag_for_review=True,
            **common,
        )

    async def _call(self, oracle: ScoringOracle, text: str) -> OracleResult:
        """Call one oracle with bounded retries.

        Args:
            oracle: Oracle to call.
            text: Review text.

        Returns:
            OracleResult holding the score or the final error.
        """
        retrying = self._build_retrying()
        attempts = 0
        try:
            async for attempt in retrying:
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    value = validate_oracle_value(await oracle.score(text))
        except OracleError as e:
            return OracleResult(oracle=oracle.name, error=str(e), attempts=attempts)
        return OracleResult(oracle=oracle.name, value=value, attempts=attempts)

    def _build_retrying(self) -> AsyncRetrying:
        options = {
            "stop": stop_after_attempt(self._config.max_attempts),
            "wait": self._wait,
            "retry": retry_if_exception_type(OracleError),
            "before_sleep": self._log_retry,
            "reraise": True,
        }
        if self._sleep is not None:
            options["sleep"] = self._sleep
        return AsyncRetrying(**options)

    @staticmethod
    def _log_retry(retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        error = outcome.exception() if outcome else None
        logger.debug(
            "Oracle attempt %d failed (%s), retrying in %.1fs",
            retry_state.attempt_number,
            error,
            retry_state.next_action.sleep if retry_state.next_action else 0.0,
        )
