"""
Chain Tutor - Anthropic Claude Client
Hosted Claude chat model, used as a conversation or fallback provider
"""

import time
from typing import Any, Callable, Dict, List, Optional, Tuple
from dataclasses import dataclass

from core.logger import log_warning

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"

# Error types worth another attempt against the same model
TRANSIENT_ERRORS = ("timeout", "connection_error", "server_error", "overloaded")

# HTTP status -> (error_type, message); None message means use the SDK's text
STATUS_ERRORS: Dict[int, Tuple[str, Optional[str]]] = {
    400: ("bad_request", None),
    401: ("auth_error", "Authentication failed"),
    403: ("auth_error", "Authentication failed"),
    429: ("rate_limited", "Rate limit exceeded"),
    500: ("server_error", "Server error (500)"),
    502: ("server_error", "Server error (502)"),
    503: ("server_error", "Server error (503)"),
    529: ("overloaded", "API overloaded"),
}


@dataclass
class AnthropicResponse:
    """Response from Anthropic API."""
    text: str
    input_tokens: int
    output_tokens: int
    success: bool
    error: Optional[str] = None
    error_type: Optional[str] = None
    stop_reason: Optional[str] = None


def classify_api_error(error: Exception) -> Tuple[str, str]:
    """
    Map an anthropic SDK exception to (error_type, message).

    Timeouts are checked before connection errors because the SDK's
    timeout error subclasses its connection error.
    """
    import anthropic

    message = str(error)

    if isinstance(error, anthropic.APITimeoutError):
        return "timeout", "Request timed out"
    if isinstance(error, anthropic.APIConnectionError):
        return "connection_error", "Connection failed"
    if isinstance(error, anthropic.APIStatusError):
        error_type, fixed = STATUS_ERRORS.get(
            error.status_code,
            ("server_error" if error.status_code >= 500 else "bad_request", None)
        )
        return error_type, fixed or message

    lowered = message.lower()
    if "overloaded" in lowered:
        return "overloaded", "API overloaded"
    if "api key" in lowered or "authentication" in lowered:
        return "auth_error", "Invalid API key"
    return "unknown", message


class AnthropicClient:
    """
    Client for Anthropic Claude API.

    Only plain text chat is used: function calls are requested by the
    model through in-text markers, not through native tool use.
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        max_tokens: int = 2000,
        timeout: int = 120,
        retry_max_attempts: int = 3,
        retry_initial_delay: float = 1.0,
        retry_backoff: float = 2.0,
        sleep: Callable[[float], Any] = time.sleep
    ):
        """
        Initialize the Anthropic client.

        Args:
            api_key: Anthropic API key
            model: Claude model name
            max_tokens: Default generation limit
            timeout: Request timeout in seconds
            retry_max_attempts: Attempts for transient errors
            retry_initial_delay: First backoff delay in seconds
            retry_backoff: Backoff multiplier
            sleep: Sleep function (injectable for tests)
        """
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.retry_max_attempts = max(1, retry_max_attempts)
        self.retry_initial_delay = retry_initial_delay
        self.retry_backoff = retry_backoff
        self._sleep = sleep
        self._client = None

    def _sdk(self):
        """Create the SDK client on first use."""
        if self._client is None:
            import anthropic
            self._client = anthropic.Anthropic(api_key=self.api_key, timeout=self.timeout)
        return self._client

    def is_available(self) -> bool:
        """Claude is usable whenever a key is configured."""
        return bool(self.api_key)

    def _create(self, params: Dict[str, Any]):
        """messages.create with exponential backoff on transient errors."""
        delay = self.retry_initial_delay
        attempt = 1
        while True:
            try:
                return self._sdk().messages.create(**params)
            except Exception as e:
                error_type, message = classify_api_error(e)
                if error_type not in TRANSIENT_ERRORS or attempt >= self.retry_max_attempts:
                    raise
                log_warning(
                    f"Claude {error_type} on attempt {attempt}/{self.retry_max_attempts}: "
                    f"{message}. Retrying in {delay:.1f}s"
                )
                self._sleep(delay)
                delay *= self.retry_backoff
                attempt += 1

    @staticmethod
    def _failure(error: str, error_type: str) -> AnthropicResponse:
        return AnthropicResponse(
            text="", input_tokens=0, output_tokens=0,
            success=False, error=error, error_type=error_type
        )

    def chat(
        self,
        messages: List[Dict[str, Any]],
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: float = 0.7,
        top_p: Optional[float] = None
    ) -> AnthropicResponse:
        """
        Send a chat completion request.

        Args:
            messages: Alternating user/assistant message dicts, user first
            system_prompt: Optional system prompt
            max_tokens: Generation limit (client default if None)
            temperature: Sampling temperature
            top_p: Optional nucleus sampling

        Returns:
            AnthropicResponse; API failures are reported, not raised
        """
        if not self.api_key:
            return self._failure(
                "Please provide an Anthropic API key in the settings", "missing_credentials"
            )

        params: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens or self.max_tokens,
            "temperature": temperature,
            "messages": messages,
        }
        if system_prompt:
            params["system"] = system_prompt
        if top_p is not None:
            params["top_p"] = top_p

        try:
            response = self._create(params)
        except Exception as e:
            error_type, message = classify_api_error(e)
            return self._failure(message, error_type)

        text = "".join(
            block.text for block in (response.content or [])
            if getattr(block, "type", "text") == "text" and getattr(block, "text", None)
        )
        return AnthropicResponse(
            text=text,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            success=True,
            stop_reason=response.stop_reason
        )


# Global client instance
_anthropic_client: Optional[AnthropicClient] = None


def get_anthropic_client() -> AnthropicClient:
    """Get the global Anthropic client instance."""
    global _anthropic_client
    if _anthropic_client is None:
        import config
        _anthropic_client = AnthropicClient(
            api_key=config.ANTHROPIC_API_KEY,
            model=config.ANTHROPIC_MODEL,
            max_tokens=config.ANTHROPIC_MAX_TOKENS,
            timeout=config.ANTHROPIC_TIMEOUT,
            retry_max_attempts=config.API_RETRY_MAX_ATTEMPTS,
            retry_initial_delay=config.API_RETRY_INITIAL_DELAY,
            retry_backoff=config.API_RETRY_BACKOFF_MULTIPLIER
        )
    return _anthropic_client
