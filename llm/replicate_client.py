"""
Chain Tutor - Replicate Client
HTTP client for the hosted Flock Web3 model on Replicate

The Flock Web3 model takes a single query string plus a JSON catalogue of
available tools. Predictions are asynchronous: the create call may return
while the job is still "starting" or "processing", in which case the
prediction is polled a bounded number of times.
"""

import time
import requests
from typing import Any, Callable, Dict, Optional
from dataclasses import dataclass

from concurrency.polling import poll_until
from core.logger import log_info, log_warning

PENDING_STATUSES = ("starting", "processing")
FAILED_STATUSES = ("failed", "canceled")
TIMEOUT_TEXT = "Timeout: Prediction took too long to complete"


@dataclass
class ReplicateResponse:
    """Response from a Replicate prediction."""
    text: str
    success: bool
    prediction_id: Optional[str] = None
    status: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None


class ReplicateError(Exception):
    """Raised internally when the Replicate API reports a failure."""

    def __init__(self, message: str, error_type: str = "unknown"):
        super().__init__(message)
        self.error_type = error_type


class ReplicateClient:
    """Client for Replicate's predictions API."""

    def __init__(
        self,
        api_token: str,
        model_version: str,
        api_url: str = "https://api.replicate.com/v1/predictions",
        timeout: int = 60,
        poll_max_attempts: int = 50,
        poll_delay: float = 1.0,
        sleep: Callable[[float], Any] = time.sleep
    ):
        """
        Initialize the Replicate client.

        Args:
            api_token: Replicate API token
            model_version: Version hash of the model to run
            api_url: Predictions endpoint
            timeout: Per-request timeout in seconds
            poll_max_attempts: Max status checks for a pending prediction
            poll_delay: Seconds between status checks
            sleep: Sleep function (injectable for tests)
        """
        self.api_token = api_token
        self.model_version = model_version
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.poll_max_attempts = poll_max_attempts
        self.poll_delay = poll_delay
        self._sleep = sleep

    def is_available(self) -> bool:
        """Replicate is usable whenever a token is configured."""
        return bool(self.api_token)

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Token {self.api_token}",
        }

    @staticmethod
    def _output_text(output: Any) -> str:
        """Replicate language models stream output as a list of chunks."""
        if output is None:
            return ""
        if isinstance(output, list):
            return "".join(str(chunk) for chunk in output)
        return str(output)

    @staticmethod
    def _error_detail(response: requests.Response, default: str) -> str:
        try:
            return response.json().get("detail") or default
        except ValueError:
            return default

    def _fetch_prediction(self, prediction_id: str) -> Dict[str, Any]:
        response = requests.get(
            f"{self.api_url}/{prediction_id}",
            headers=self._headers(),
            timeout=self.timeout
        )
        if not response.ok:
            raise ReplicateError(
                self._error_detail(response, "Failed to poll prediction status"),
                error_type="server_error" if response.status_code >= 500 else "bad_request"
            )
        prediction = response.json()
        if prediction.get("status") in FAILED_STATUSES:
            raise ReplicateError(prediction.get("error") or "Prediction failed", "prediction_failed")
        return prediction

    def run(
        self,
        query: str,
        tools: str,
        temperature: float = 0.7,
        top_p: float = 0.9,
        max_new_tokens: int = 3000
    ) -> ReplicateResponse:
        """
        Run the Flock Web3 model on a query.

        Args:
            query: Full prompt text
            tools: JSON string describing the callable tools
            temperature: Sampling temperature
            top_p: Top-p (nucleus) sampling
            max_new_tokens: Generation limit

        Returns:
            ReplicateResponse; never raises for API or network failures
        """
        if not self.api_token:
            return ReplicateResponse(
                text="",
                success=False,
                error="Please provide a Replicate API token in the settings",
                error_type="missing_credentials"
            )

        payload = {
            "version": self.model_version,
            "input": {
                "query": query,
                "tools": tools,
                "top_p": top_p,
                "temperature": temperature,
                "max_new_tokens": max_new_tokens,
            },
        }

        try:
            response = requests.post(
                self.api_url,
                json=payload,
                headers=self._headers(),
                timeout=self.timeout
            )
            if not response.ok:
                error_type = "auth_error" if response.status_code in (401, 403) else "bad_request"
                if response.status_code >= 500:
                    error_type = "server_error"
                raise ReplicateError(
                    self._error_detail(response, "Failed to call Flock Web3 model"),
                    error_type=error_type
                )

            prediction = response.json()
            prediction_id = prediction.get("id")
            status = prediction.get("status")

            if status in PENDING_STATUSES and prediction_id:
                log_info(f"Prediction {prediction_id} is {status}, polling", prefix="⏳")
                outcome = poll_until(
                    check=lambda: self._fetch_prediction(prediction_id),
                    is_done=lambda p: p.get("status") == "succeeded",
                    max_attempts=self.poll_max_attempts,
                    delay=self.poll_delay,
                    sleep=self._sleep,
                    label=f"prediction {prediction_id}"
                )
                if outcome.timed_out:
                    return ReplicateResponse(
                        text=TIMEOUT_TEXT,
                        success=False,
                        prediction_id=prediction_id,
                        status=(outcome.value or {}).get("status"),
                        error=TIMEOUT_TEXT,
                        error_type="timeout"
                    )
                prediction = outcome.value
                status = prediction.get("status")
            elif status in FAILED_STATUSES:
                raise ReplicateError(prediction.get("error") or "Prediction failed", "prediction_failed")

            text = self._output_text(prediction.get("output"))
            if not text.strip():
                return ReplicateResponse(
                    text="",
                    success=False,
                    prediction_id=prediction_id,
                    status=status,
                    error="No output from model",
                    error_type="empty_response"
                )

            return ReplicateResponse(
                text=text.strip(),
                success=True,
                prediction_id=prediction_id,
                status=status
            )

        except ReplicateError as e:
            log_warning(f"Replicate error: {e}")
            return ReplicateResponse(text="", success=False, error=str(e), error_type=e.error_type)
        except requests.Timeout:
            return ReplicateResponse(text="", success=False, error="Request timed out", error_type="timeout")
        except requests.ConnectionError:
            return ReplicateResponse(
                text="", success=False,
                error="Connection to Replicate failed",
                error_type="connection_error"
            )
        except (requests.RequestException, ValueError) as e:
            return ReplicateResponse(text="", success=False, error=str(e), error_type="unknown")


# Global client instance
_replicate_client: Optional[ReplicateClient] = None


def get_replicate_client() -> ReplicateClient:
    """Get the global Replicate client instance."""
    global _replicate_client
    if _replicate_client is None:
        import config
        _replicate_client = ReplicateClient(
            api_token=config.REPLICATE_API_TOKEN,
            model_version=config.REPLICATE_MODEL_VERSION,
            api_url=config.REPLICATE_API_URL,
            timeout=config.REPLICATE_TIMEOUT,
            poll_max_attempts=config.REPLICATE_POLL_MAX_ATTEMPTS,
            poll_delay=config.REPLICATE_POLL_DELAY
        )
    return _replicate_client
