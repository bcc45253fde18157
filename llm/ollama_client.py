"""
Chain Tutor - Ollama Client
HTTP client for the local Llama model via the Ollama chat API
"""

import requests
from typing import Optional, List, Dict, Any
from dataclasses import dataclass

from core.logger import log_warning

# Text returned in place of a completion when Ollama answers without content
NO_VALID_RESPONSE = "No valid response from Llama model"


@dataclass
class OllamaResponse:
    """Response from the Ollama API."""
    text: str
    tokens_generated: int
    success: bool
    error: Optional[str] = None
    error_type: Optional[str] = None


class OllamaClient:
    """
    Client for a local Ollama server.

    Ollama serves Llama-family models behind an OpenAI-like chat endpoint
    (`POST /api/chat`). Roles "system", "user", "assistant" and "tool"
    are accepted; function results are sent with the "tool" role.
    """

    def __init__(
        self,
        api_url: str = "http://localhost:11434",
        model: str = "llama3.2",
        timeout: int = 120
    ):
        """
        Initialize the Ollama client.

        Args:
            api_url: Base URL of the Ollama server
            model: Model tag to chat with
            timeout: Request timeout in seconds
        """
        self.api_url = api_url.rstrip("/")
        self.model = model
        self.timeout = timeout

    def is_available(self) -> bool:
        """Check if Ollama is running and has the configured model."""
        try:
            response = requests.get(f"{self.api_url}/api/tags", timeout=5)
            if response.status_code != 200:
                return False
            models = response.json().get("models", [])
            names = {m.get("name", "").split(":")[0] for m in models}
            return self.model.split(":")[0] in names
        except (requests.RequestException, ValueError):
            return False

    def chat(
        self,
        messages: List[Dict[str, Any]],
        max_tokens: Optional[int] = None,
        temperature: float = 0.7,
        top_p: float = 0.9
    ) -> OllamaResponse:
        """
        Chat-style completion with message history.

        Args:
            messages: List of {"role": ..., "content": ...} dicts
            max_tokens: Maximum tokens to generate (model default if None)
            temperature: Sampling temperature
            top_p: Top-p (nucleus) sampling

        Returns:
            OllamaResponse with generated text
        """
        options: Dict[str, Any] = {
            "temperature": temperature,
            "top_p": top_p,
        }
        if max_tokens is not None:
            options["num_predict"] = max_tokens

        payload = {
            "model": self.model,
            "messages": messages,
            "stream": False,
            "options": options,
        }

        try:
            response = requests.post(
                f"{self.api_url}/api/chat",
                json=payload,
                timeout=self.timeout
            )

            if response.status_code == 200:
                data = response.json()
                content = (data.get("message") or {}).get("content") or ""

                if content.strip():
                    return OllamaResponse(
                        text=content.strip(),
                        tokens_generated=data.get("eval_count", len(content.split())),
                        success=True
                    )

                log_warning("Ollama returned a response without message content")
                return OllamaResponse(
                    text=NO_VALID_RESPONSE,
                    tokens_generated=0,
                    success=False,
                    error=NO_VALID_RESPONSE,
                    error_type="empty_response"
                )

            return OllamaResponse(
                text="",
                tokens_generated=0,
                success=False,
                error=f"Error from local API: HTTP {response.status_code} {response.reason}",
                error_type="server_error" if response.status_code >= 500 else "bad_request"
            )

        except requests.Timeout:
            return OllamaResponse(
                text="",
                tokens_generated=0,
                success=False,
                error="Request timed out",
                error_type="timeout"
            )
        except requests.ConnectionError:
            return OllamaResponse(
                text="",
                tokens_generated=0,
                success=False,
                error=f"Connection failed - is Ollama running at {self.api_url}?",
                error_type="connection_error"
            )
        except (requests.RequestException, ValueError) as e:
            return OllamaResponse(
                text="",
                tokens_generated=0,
                success=False,
                error=str(e),
                error_type="unknown"
            )


# Global client instance
_ollama_client: Optional[OllamaClient] = None


def get_ollama_client() -> OllamaClient:
    """Get the global Ollama client instance."""
    global _ollama_client
    if _ollama_client is None:
        from config import OLLAMA_API_URL, OLLAMA_MODEL, OLLAMA_TIMEOUT
        _ollama_client = OllamaClient(
            api_url=OLLAMA_API_URL,
            model=OLLAMA_MODEL,
            timeout=OLLAMA_TIMEOUT
        )
    return _ollama_client
