"""
Chain Tutor - LLM Router
Routes chat requests to the configured model provider with optional fallback
"""

from enum import Enum
from typing import Optional, List, Dict, Any
from dataclasses import dataclass

from core.logger import log_info, log_warning
from llm.anthropic_client import AnthropicClient, get_anthropic_client
from llm.ollama_client import NO_VALID_RESPONSE, OllamaClient, get_ollama_client
from llm.replicate_client import TIMEOUT_TEXT, ReplicateClient, get_replicate_client

# Placeholder strings some providers return instead of a real completion
INVALID_RESPONSE_MARKERS = (
    NO_VALID_RESPONSE,
    "No response from model",
    "No output from model",
    TIMEOUT_TEXT,
)


class LLMProvider(Enum):
    """Available LLM providers."""
    OLLAMA = "ollama"          # Local Llama 3.2
    REPLICATE = "replicate"    # Hosted Flock Web3 model
    ANTHROPIC = "anthropic"    # Hosted Claude


@dataclass
class LLMResponse:
    """Unified response from any LLM provider."""
    text: str
    success: bool
    provider: LLMProvider
    error: Optional[str] = None
    error_type: Optional[str] = None  # "timeout", "connection_error", "auth_error", etc.


def is_valid_completion(text: Optional[str]) -> bool:
    """
    Check that a completion is usable as a reply.

    Empty text and replies that consist of a known placeholder marker are
    rejected. A reply that merely quotes a marker is kept.
    """
    if not text or not text.strip():
        return False
    return text.strip() not in INVALID_RESPONSE_MARKERS


class LLMRouter:
    """
    Routes LLM requests to providers.

    Handles:
    - Provider selection (primary, or forced per call)
    - Message shaping for each provider's conversation format
    - A single fallback attempt on failure
    """

    def __init__(
        self,
        primary_provider: LLMProvider = LLMProvider.OLLAMA,
        fallback_provider: Optional[LLMProvider] = None,
        temperature: float = 0.7,
        top_p: float = 0.9,
        max_tokens: int = 2000
    ):
        """
        Initialize the router.

        Args:
            primary_provider: Provider used unless a call forces another
            fallback_provider: Provider tried once if the first one fails
            temperature: Default sampling temperature
            top_p: Default nucleus sampling
            max_tokens: Default generation limit
        """
        self.primary_provider = primary_provider
        self.fallback_provider = fallback_provider
        self.temperature = temperature
        self.top_p = top_p
        self.max_tokens = max_tokens
        self._ollama: Optional[OllamaClient] = None
        self._replicate: Optional[ReplicateClient] = None
        self._anthropic: Optional[AnthropicClient] = None

    def _get_ollama(self) -> OllamaClient:
        """Get or create Ollama client."""
        if self._ollama is None:
            self._ollama = get_ollama_client()
        return self._ollama

    def _get_replicate(self) -> ReplicateClient:
        """Get or create Replicate client."""
        if self._replicate is None:
            self._replicate = get_replicate_client()
        return self._replicate

    def _get_anthropic(self) -> AnthropicClient:
        """Get or create Anthropic client."""
        if self._anthropic is None:
            self._anthropic = get_anthropic_client()
        return self._anthropic

    def set_primary_provider(self, provider: LLMProvider) -> None:
        """Switch the provider used for subsequent requests."""
        self.primary_provider = provider
        log_info(f"Primary LLM provider set to {provider.value}", prefix="🔀")

    def check_providers(self) -> Dict[LLMProvider, bool]:
        """
        Check which providers are usable.

        Returns:
            Dict mapping provider to availability
        """
        return {
            LLMProvider.OLLAMA: self._get_ollama().is_available(),
            LLMProvider.REPLICATE: self._get_replicate().is_available(),
            LLMProvider.ANTHROPIC: self._get_anthropic().is_available(),
        }

    def chat(
        self,
        messages: List[Dict[str, Any]],
        system_prompt: Optional[str] = None,
        force_provider: Optional[LLMProvider] = None,
        tools_json: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> LLMResponse:
        """
        Send a chat request, routing to the appropriate provider.

        Messages use the roles user, assistant, system and function
        (function messages carry a "name"). Each provider receives them
        in the shape it understands.

        Args:
            messages: List of message dicts
            system_prompt: Optional system prompt
            force_provider: Bypass the primary provider for this call
            tools_json: Tool catalogue JSON (used by the Replicate model)
            temperature: Sampling temperature override
            max_tokens: Generation limit override

        Returns:
            LLMResponse; provider failures are reported, never raised
        """
        provider = force_provider or self.primary_provider

        response = self._send_to_provider(
            provider, messages, system_prompt, tools_json, temperature, max_tokens
        )

        if (not response.success
                and self.fallback_provider is not None
                and self.fallback_provider != provider):
            log_warning(
                f"{provider.value} failed ({response.error_type}: {response.error}), "
                f"falling back to {self.fallback_provider.value}"
            )
            fallback = self._send_to_provider(
                self.fallback_provider, messages, system_prompt, tools_json, temperature, max_tokens
            )
            if fallback.success:
                return fallback
            log_warning(f"Fallback {self.fallback_provider.value} also failed: {fallback.error}")

        return response

    def _send_to_provider(
        self,
        provider: LLMProvider,
        messages: List[Dict[str, Any]],
        system_prompt: Optional[str],
        tools_json: Optional[str],
        temperature: Optional[float],
        max_tokens: Optional[int]
    ) -> LLMResponse:
        """Send a request to one provider and wrap its response."""
        temperature = self.temperature if temperature is None else temperature
        max_tokens = self.max_tokens if max_tokens is None else max_tokens

        log_info(f"LLM request → {provider.value} ({len(messages)} messages)", prefix="💬")

        if provider == LLMProvider.OLLAMA:
            result = self._get_ollama().chat(
                messages=to_ollama_messages(messages, system_prompt),
                max_tokens=max_tokens,
                temperature=temperature,
                top_p=self.top_p
            )
        elif provider == LLMProvider.REPLICATE:
            result = self._get_replicate().run(
                query=to_replicate_query(messages, system_prompt),
                tools=tools_json or "{}",
                temperature=temperature,
                top_p=self.top_p,
                max_new_tokens=max_tokens
            )
        else:
            system, anthropic_messages = to_anthropic_messages(messages, system_prompt)
            result = self._get_anthropic().chat(
                messages=anthropic_messages,
                system_prompt=system,
                max_tokens=max_tokens,
                temperature=temperature
            )

        if not result.success:
            log_warning(f"{provider.value} request failed: {result.error_type} - {result.error}")

        return LLMResponse(
            text=result.text,
            success=result.success,
            provider=provider,
            error=result.error,
            error_type=result.error_type
        )


def to_ollama_messages(
    messages: List[Dict[str, Any]],
    system_prompt: Optional[str] = None
) -> List[Dict[str, Any]]:
    """Ollama accepts system messages inline and function results as "tool"."""
    shaped: List[Dict[str, Any]] = []
    if system_prompt:
        shaped.append({"role": "system", "content": system_prompt})
    for msg in messages:
        if msg["role"] == "function":
            shaped.append({
                "role": "tool",
                "tool_name": msg.get("name", ""),
                "content": msg["content"],
            })
        else:
            shaped.append({"role": msg["role"], "content": msg["content"]})
    return shaped


def to_anthropic_messages(
    messages: List[Dict[str, Any]],
    system_prompt: Optional[str] = None
) -> tuple:
    """
    Shape messages for the Messages API.

    System messages move into the system prompt, function results become
    user turns, and consecutive same-role turns are merged so roles
    alternate starting with "user".

    Returns:
        Tuple of (system_prompt, messages)
    """
    system_parts = [system_prompt] if system_prompt else []
    shaped: List[Dict[str, str]] = []

    for msg in messages:
        role = msg["role"]
        content = msg["content"]

        if role == "system":
            system_parts.append(content)
            continue
        if role == "function":
            role = "user"
            content = f"Result of the {msg.get('name', 'function')} function call:\n{content}"

        if shaped and shaped[-1]["role"] == role:
            shaped[-1]["content"] += f"\n\n{content}"
        else:
            shaped.append({"role": role, "content": content})

    # Leading assistant greetings are dropped; the API expects a user turn first
    while shaped and shaped[0]["role"] != "user":
        shaped.pop(0)

    system = "\n\n".join(system_parts) if system_parts else None
    return system, shaped


def to_replicate_query(
    messages: List[Dict[str, Any]],
    system_prompt: Optional[str] = None
) -> str:
    """Flatten a conversation into the single query string Flock Web3 takes."""
    lines = []
    if system_prompt:
        lines.append(system_prompt)
        lines.append("")
    for msg in messages:
        role = msg["role"]
        if role == "function":
            lines.append(f"Function result ({msg.get('name', 'function')}): {msg['content']}")
        elif role == "system":
            lines.append(msg["content"])
        else:
            lines.append(f"{role.capitalize()}: {msg['content']}")
    return "\n".join(lines).strip()


# Global router instance
_router: Optional[LLMRouter] = None


def get_llm_router() -> LLMRouter:
    """Get the global LLM router instance."""
    global _router
    if _router is None:
        import config
        _router = init_llm_router(
            primary_provider=config.LLM_PRIMARY_PROVIDER,
            fallback_provider=config.LLM_FALLBACK_PROVIDER
        )
    return _router


def init_llm_router(
    primary_provider: str = "ollama",
    fallback_provider: str = ""
) -> LLMRouter:
    """Initialize the global LLM router."""
    global _router
    import config
    _router = LLMRouter(
        primary_provider=LLMProvider(primary_provider),
        fallback_provider=LLMProvider(fallback_provider) if fallback_provider else None,
        temperature=config.LLM_TEMPERATURE,
        top_p=config.LLM_TOP_P,
        max_tokens=config.LLM_MAX_TOKENS
    )
    return _router
