"""Generation client calling the OpenAI chat-completions API."""

import logging
import threading
import time
from typing import Callable, Optional

import openai
from openai import OpenAI

from testgen.config import settings
from testgen.exceptions import GenerationException
from testgen.models.generation_models import Prompt

logger = logging.getLogger(__name__)

# Status codes at or above this are retried; 4xx never are
_RETRYABLE_STATUS = 500


class Deadline:
    """
    Time budget shared by every LLM call made for one request.

    cancel() may be called from another thread (the event loop) while the
    generation runs in a worker thread.
    """

    def __init__(
        self,
        seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._clock = clock
        self.expires_at = None if seconds is None else clock() + seconds
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> Optional[float]:
        """Seconds left, or None when there is no time limit."""
        if self.expires_at is None:
            return None
        return max(0.0, self.expires_at - self._clock())

    def check(self, stage: str) -> None:
        """
        Raises:
            GenerationException: reason "timeout", if cancelled or expired
        """
        if self.cancelled:
            raise GenerationException(
                "Generation cancelled", reason="timeout", details={"stage": stage}
            )
        if self.remaining() == 0:
            raise GenerationException(
                "Request deadline exceeded", reason="timeout", details={"stage": stage}
            )


class GenerationService:
    """Service for obtaining raw test text from the LLM."""

    def __init__(
        self,
        openai_client: Optional[OpenAI] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize generation service.

        Args:
            openai_client: OpenAI client instance
            model: Model identifier
            temperature: Sampling temperature
            timeout: Timeout in seconds for a single completion call
            max_retries: Retries on timeouts, connection errors and 5xx
            sleep: Backoff sleep function
        """
        self.timeout = timeout or settings.generation_timeout_sec
        # Retries are handled here, not by the SDK
        self.client = openai_client or OpenAI(
            api_key=settings.openai_api_key,
            timeout=self.timeout,
            max_retries=0,
        )
        self.model = model or settings.generation_model
        self.temperature = (
            settings.generation_temperature if temperature is None else temperature
        )
        self.max_retries = (
            settings.generation_max_retries if max_retries is None else max_retries
        )
        self.sleep = sleep

    def generate(self, prompt: Prompt, deadline: Optional[Deadline] = None) -> str:
        """
        Send the prompt and return the model's raw text.

        Args:
            prompt: Prompt built by PromptBuilder
            deadline: Request budget; checked before every attempt and backoff

        Returns:
            Raw completion text, not guaranteed to be JSON

        Raises:
            GenerationException: With reason unauthorized, rate-limited,
                upstream-error or timeout
        """
        attempts = self.max_retries + 1
        last_error: Optional[GenerationException] = None

        for attempt in range(attempts):
            timeout = self._call_timeout(deadline)
            start_time = time.time()
            try:
                logger.info(
                    f"Generation attempt {attempt + 1}/{attempts} using model: {self.model}"
                )
                response = self.client.chat.completions.create(
                    model=self.model,
                    messages=[{"role": "user", "content": prompt.instruction}],
                    temperature=self.temperature,
                    timeout=timeout,
                )
                choices = response.choices or []
                content = (choices[0].message.content if choices else None) or ""
                elapsed_ms = (time.time() - start_time) * 1000
                logger.info(
                    f"Generation successful. Response length: {len(content)} chars, "
                    f"Time: {elapsed_ms:.2f}ms"
                )
                return content

            except openai.OpenAIError as e:
                last_error = self._classify(e)
                logger.warning(
                    f"Generation attempt {attempt + 1}/{attempts} failed: {last_error.reason}",
                    extra={
                        "model": self.model,
                        "attempt": attempt + 1,
                        "error_type": type(e).__name__,
                        "status_code": last_error.details.get("status_code"),
                    },
                )
                if not self._is_retryable(e):
                    raise last_error from e
                if attempt < attempts - 1:
                    # Exponential backoff: 1s, 2s, 4s...
                    wait_time = 2**attempt
                    self._check_backoff(deadline, wait_time)
                    logger.warning(f"Retrying generation in {wait_time} seconds...")
                    self.sleep(wait_time)
                else:
                    logger.error(
                        f"Generation failed after {attempts} attempt(s): {last_error.reason}"
                    )
                    raise last_error from e

        raise GenerationException("Generation was not attempted")

    def _call_timeout(self, deadline: Optional[Deadline]) -> float:
        if deadline is None:
            return self.timeout
        deadline.check("attempt")
        remaining = deadline.remaining()
        return self.timeout if remaining is None else min(self.timeout, remaining)

    @staticmethod
    def _check_backoff(deadline: Optional[Deadline], wait_time: float) -> None:
        if deadline is None:
            return
        deadline.check("backoff")
        remaining = deadline.remaining()
        if remaining is not None and wait_time >= remaining:
            raise GenerationException(
                "Request deadline exceeded", reason="timeout", details={"stage": "backoff"}
            )

    @staticmethod
    def _is_retryable(error: openai.OpenAIError) -> bool:
        # APITimeoutError is a subclass of APIConnectionError
        if isinstance(error, openai.APIConnectionError):
            return True
        if isinstance(error, openai.APIStatusError):
            return error.status_code >= _RETRYABLE_STATUS
        return False

    @staticmethod
    def _classify(error: openai.OpenAIError) -> GenerationException:
        """Map an SDK error to a GenerationException without echoing request data."""
        if isinstance(error, openai.APITimeoutError):
            return GenerationException("LLM request timed out", reason="timeout")
        if isinstance(error, openai.APIConnectionError):
            return GenerationException("Could not reach the LLM service")
        if isinstance(error, openai.APIStatusError):
            status_code = error.status_code
            details = {"status_code": status_code}
            if status_code in (401, 403):
                return GenerationException(
                    "LLM service rejected the credentials",
                    reason="unauthorized",
                    details=details,
                )
            if status_code == 429:
                return GenerationException(
                    "LLM service rate limit exceeded",
                    reason="rate-limited",
                    details=details,
                )
            if status_code >= 500:
                return GenerationException(
                    f"LLM service error (HTTP {status_code})", details=details
                )
            return GenerationException(
                f"LLM service refused the request (HTTP {status_code})",
                details=details,
            )
        return GenerationException(f"LLM call failed: {type(error).__name__}")
