import random
import time
from email.utils import parsedate_to_datetime
from typing import Any, cast

import openai
from openai import OpenAI

from shipping_agent.app.errors import ModelInvocationError, ModelTimeoutError
from shipping_agent.infrastructure.data_models import Message

# Default configuration constants for GPT-5
DEFAULT_MAX_OUTPUT_TOKENS_GPT5 = 1000
DEFAULT_REASONING_EFFORT = "low"
DEFAULT_VERBOSITY = "low"
DEFAULT_TOOL_CHOICE = "auto"
# Default configuration constants for GPT-4 family
DEFAULT_MAX_OUTPUT_TOKENS_GPT4 = 800
DEFAULT_TEMPERATURE = 0.7
# Shared configuration constants
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_ATTEMPTS = 1
DEFAULT_RETRY_DELAY = 1.0

SUPPORTED_MODEL_PREFIXES = ("gpt-5", "gpt-4")

# Based on OpenAI guidance: retry 429/rate limit, network timeouts, and 5xx
RETRYABLE_ERRORS: tuple[type[Exception], ...] = (
    TimeoutError,
    openai.RateLimitError,
    openai.APIConnectionError,  # APITimeoutError is a subclass
    openai.InternalServerError,
)


def _retry_sleep_seconds_from_headers(err: Exception) -> float | None:
    """
    Inspect the exception for rate-limit/Retry-After headers and return
    an absolute number of seconds to sleep. Returns None if no guidance.
    """
    resp = getattr(err, "response", None)
    headers = getattr(resp, "headers", None) or {}
    if not headers:
        return None

    def get_header(name: str) -> str | None:
        return headers.get(name) or headers.get(name.lower())

    def seconds_until(value: str) -> float | None:
        try:
            return parsedate_to_datetime(value).timestamp() - time.time()
        except (TypeError, ValueError):
            return None

    # 1) Honor Retry-After if present (seconds OR HTTP-date)
    retry_after = get_header("Retry-After")
    if retry_after:
        retry_after = retry_after.strip()
        try:
            return max(0.0, float(retry_after))
        except ValueError:
            pass
        guided = seconds_until(retry_after)
        if guided is not None:
            return max(0.0, guided)

    # 2) Use the later of the reset timestamps (epoch seconds)
    resets: list[float] = []
    for key in ("x-ratelimit-reset-requests", "x-ratelimit-reset-tokens"):
        header_value = get_header(key)
        if not header_value:
            continue
        try:
            resets.append(float(header_value) - time.time())
        except ValueError:
            guided = seconds_until(header_value)
            if guided is not None:
                resets.append(guided)

    if resets:
        return max(0.0, max(resets))

    return None


class OpenAIChat:
    """
    A client for OpenAI's GPT models (Responses API) with an optional retry policy.

    By default a request is attempted once; `max_attempts` opts into retries of
    transient errors with exponential backoff and jitter.
    """

    def __init__(
        self,
        model: str,
        api_key: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        client: OpenAI | None = None,
    ) -> None:
        """
        Initialize the OpenAI chat client.

        Args:
            model: The OpenAI model to use (e.g., 'gpt-5-mini')
            api_key: The OpenAI API key
            timeout: Per-request deadline in seconds
            max_attempts: Attempts per request, including the first
            client: Pre-configured OpenAI client (for tests/advanced use)

        Raises:
            ValueError: If the API key is missing or the model is not supported
        """
        if not model.startswith(SUPPORTED_MODEL_PREFIXES):
            raise ValueError(f"Unsupported model: {model}")
        if client is None:
            if not api_key:
                raise ValueError("OPENAI_API_KEY not found in environment")
            # The SDK's own retries are disabled; attempts are governed by max_attempts
            client = OpenAI(api_key=api_key, timeout=timeout, max_retries=0)

        self.client: OpenAI = client
        self.model = model
        self.max_attempts = max(1, max_attempts)

    def _params_for_model(self, **kwargs: Any) -> dict[str, Any]:
        """
        Return default parameters based on model family.

        Args:
            **kwargs: Additional parameters to override defaults

        Returns:
            Dictionary of parameters for the specific model
        """
        if self.model.startswith("gpt-5"):
            return {
                "max_output_tokens": kwargs.get(
                    "max_output_tokens", DEFAULT_MAX_OUTPUT_TOKENS_GPT5
                ),
                "text": {"verbosity": kwargs.get("verbosity", DEFAULT_VERBOSITY)},
                "reasoning": {"effort": kwargs.get("reasoning_effort", DEFAULT_REASONING_EFFORT)},
                "tool_choice": kwargs.get("tool_choice", DEFAULT_TOOL_CHOICE),
                "tools": kwargs.get("tools", []),
            }
        return {
            "max_output_tokens": kwargs.get("max_output_tokens", DEFAULT_MAX_OUTPUT_TOKENS_GPT4),
            "temperature": kwargs.get("temperature", DEFAULT_TEMPERATURE),
            "tool_choice": kwargs.get("tool_choice", DEFAULT_TOOL_CHOICE),
            "tools": kwargs.get("tools", []),
        }

    def generate(self, messages: list[Message], **kwargs: Any) -> dict[str, Any]:
        """
        Generate a response from the OpenAI model.

        Args:
            messages: List of Message objects to send to the model
            **kwargs: Additional parameters to pass to the model

        Returns:
            Dictionary containing:
                - text: The generated text (may be empty when tools are called)
                - tool_calls: List of {name, arguments, call_id} in response order
                - usage: Token usage information
                - parameters: Parameters used for the request
                - model_version: Model version used

        Raises:
            ModelTimeoutError: If the request exceeded its deadline on the last attempt
            ModelInvocationError: If the model call failed or the response is unusable
        """
        input_messages = [m.to_dict() for m in messages]
        request_params = self._params_for_model(**kwargs)
        retry_delay = DEFAULT_RETRY_DELAY

        for attempt in range(self.max_attempts):
            try:
                return self._handle_response(input_messages, request_params)

            except RETRYABLE_ERRORS as e:  # Transient error occurred -- maybe retry
                if attempt == self.max_attempts - 1:
                    if isinstance(e, openai.APITimeoutError | TimeoutError):
                        raise ModelTimeoutError(f"{self.model} timed out: {e}") from e
                    raise ModelInvocationError(f"Error calling {self.model}: {e}") from e

                guided = _retry_sleep_seconds_from_headers(e)  # Find sleep time from headers
                if guided is not None:
                    # Add a tiny jitter to avoid thundering herd
                    sleep = guided + random.uniform(0.1, 0.4)
                else:
                    # Fallback to exponential backoff with jitter
                    sleep = min(retry_delay * (2**attempt), 30.0) + random.uniform(0, 0.4)

                time.sleep(max(0.0, sleep))

            except openai.OpenAIError as e:  # Non-retryable (auth, quota, bad request)
                raise ModelInvocationError(f"Fatal error calling {self.model}: {e}") from e

        raise ModelInvocationError(f"LLM call failed after {self.max_attempts} attempts")

    def _handle_response(
        self, input_messages: list[dict[str, Any]], request_params: dict[str, Any]
    ) -> dict[str, Any]:
        """
        Call the Responses API and extract text, tool calls and usage.

        Raises:
            ModelInvocationError: If the response holds neither text nor a tool call
        """
        resp = self.client.responses.create(
            model=self.model,
            input=cast(Any, input_messages),
            **request_params,
        )

        # Extract usage information
        u = getattr(resp, "usage", None)
        usage = {
            "input_tokens": getattr(u, "input_tokens", 0),
            "output_tokens": getattr(u, "output_tokens", 0),
            "total_tokens": getattr(u, "total_tokens", 0),
            "reasoning_tokens": getattr(
                getattr(u, "output_tokens_details", None), "reasoning_tokens", None
            ),
        }

        # Extract tool calls, keeping the order the model produced them in
        tool_calls: list[dict[str, Any]] = []
        for item in getattr(resp, "output", None) or []:
            if getattr(item, "type", "") in ("function_call", "tool_call"):
                name = getattr(item, "name", None)
                if not name or not isinstance(name, str):
                    raise ModelInvocationError("Tool call without a name in model response")
                tool_calls.append({
                    "name": name,
                    "arguments": getattr(item, "arguments", None) or "{}",
                    "call_id": getattr(item, "call_id", None),
                })

        text = getattr(resp, "output_text", None) or ""

        if not tool_calls and not text:
            reason = getattr(resp, "incomplete_details", None) or getattr(resp, "error", None)
            raise ModelInvocationError(f"Empty response from {self.model}: {reason}")

        return {
            "text": text,
            "tool_calls": tool_calls,
            "usage": usage,
            "parameters": request_params,
            "model_version": getattr(resp, "model", None),
        }
