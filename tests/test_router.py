"""
Tests for LLM routing, provider fallback and message shaping.
"""

import unittest
from unittest.mock import MagicMock

from llm.anthropic_client import AnthropicResponse
from llm.ollama_client import NO_VALID_RESPONSE, OllamaResponse
from llm.replicate_client import TIMEOUT_TEXT, ReplicateResponse
from llm.router import (
    LLMProvider,
    LLMRouter,
    is_valid_completion,
    to_anthropic_messages,
    to_ollama_messages,
    to_replicate_query,
)

CONVERSATION = [
    {"role": "assistant", "content": "Welcome!"},
    {"role": "user", "content": "What's the gas price?"},
    {"role": "function", "name": "get_gas_price", "content": '{"price": "20"}'},
]


class TestFallback(unittest.TestCase):
    """A failed primary request is retried once on the fallback provider."""

    def setUp(self):
        self.router = LLMRouter(
            primary_provider=LLMProvider.OLLAMA,
            fallback_provider=LLMProvider.ANTHROPIC
        )
        self.router._ollama = MagicMock()
        self.router._anthropic = MagicMock()
        self.router._replicate = MagicMock()

    def test_primary_success(self):
        self.router._ollama.chat.return_value = OllamaResponse(text="hi", tokens_generated=1, success=True)
        response = self.router.chat([{"role": "user", "content": "hello"}])
        self.assertTrue(response.success)
        self.assertIs(response.provider, LLMProvider.OLLAMA)
        self.router._anthropic.chat.assert_not_called()

    def test_fallback_used(self):
        self.router._ollama.chat.return_value = OllamaResponse(
            text="", tokens_generated=0, success=False,
            error="Connection failed", error_type="connection_error"
        )
        self.router._anthropic.chat.return_value = AnthropicResponse(
            text="hello from claude", input_tokens=5, output_tokens=4, success=True
        )
        response = self.router.chat([{"role": "user", "content": "hello"}], system_prompt="Be kind")
        self.assertTrue(response.success)
        self.assertIs(response.provider, LLMProvider.ANTHROPIC)
        self.assertEqual(self.router._anthropic.chat.call_args.kwargs["system_prompt"], "Be kind")

    def test_both_fail_returns_primary_error(self):
        self.router._ollama.chat.return_value = OllamaResponse(
            text="", tokens_generated=0, success=False, error="down", error_type="connection_error"
        )
        self.router._anthropic.chat.return_value = AnthropicResponse(
            text="", input_tokens=0, output_tokens=0, success=False,
            error="no key", error_type="missing_credentials"
        )
        response = self.router.chat([{"role": "user", "content": "hello"}])
        self.assertFalse(response.success)
        self.assertIs(response.provider, LLMProvider.OLLAMA)
        self.assertEqual(response.error_type, "connection_error")

    def test_no_fallback_configured(self):
        self.router.fallback_provider = None
        self.router._ollama.chat.return_value = OllamaResponse(
            text="", tokens_generated=0, success=False, error="down", error_type="timeout"
        )
        self.assertFalse(self.router.chat([{"role": "user", "content": "x"}]).success)
        self.router._anthropic.chat.assert_not_called()

    def test_forced_provider_is_not_retried_on_itself(self):
        self.router._anthropic.chat.return_value = AnthropicResponse(
            text="", input_tokens=0, output_tokens=0, success=False, error="x", error_type="server_error"
        )
        self.router.chat([{"role": "user", "content": "x"}], force_provider=LLMProvider.ANTHROPIC)
        self.assertEqual(self.router._anthropic.chat.call_count, 1)
        self.router._ollama.chat.assert_not_called()

    def test_replicate_receives_query_and_tools(self):
        self.router.set_primary_provider(LLMProvider.REPLICATE)
        self.router._replicate.run.return_value = ReplicateResponse(text="ok", success=True)
        self.router.chat(CONVERSATION, system_prompt="System", tools_json='{"blockchain_tools": {}}')
        kwargs = self.router._replicate.run.call_args.kwargs
        self.assertTrue(kwargs["query"].startswith("System"))
        self.assertEqual(kwargs["tools"], '{"blockchain_tools": {}}')
        self.assertEqual(kwargs["top_p"], 0.9)


class TestShaping(unittest.TestCase):
    """Per-provider message formats."""

    def test_ollama_shape(self):
        shaped = to_ollama_messages(CONVERSATION, system_prompt="System")
        self.assertEqual(shaped[0], {"role": "system", "content": "System"})
        self.assertEqual(shaped[-1]["role"], "tool")
        self.assertEqual(shaped[-1]["tool_name"], "get_gas_price")

    def test_anthropic_shape(self):
        system, shaped = to_anthropic_messages(
            [{"role": "system", "content": "Extra"}] + CONVERSATION, system_prompt="System"
        )
        self.assertEqual(system, "System\n\nExtra")
        # Leading assistant greeting dropped, user and function result merged
        self.assertEqual(len(shaped), 1)
        self.assertEqual(shaped[0]["role"], "user")
        self.assertIn("Result of the get_gas_price function call", shaped[0]["content"])

    def test_anthropic_interpretation_turn(self):
        system, shaped = to_anthropic_messages(CONVERSATION[2:], system_prompt="Interpret")
        self.assertEqual(system, "Interpret")
        self.assertEqual(shaped[0]["role"], "user")

    def test_replicate_query(self):
        query = to_replicate_query(CONVERSATION)
        self.assertIn("User: What's the gas price?", query)
        self.assertIn("Function result (get_gas_price)", query)


class TestValidCompletion(unittest.TestCase):

    def test_markers_rejected(self):
        for text in (None, "", "   ", NO_VALID_RESPONSE, TIMEOUT_TEXT):
            with self.subTest(text=text):
                self.assertFalse(is_valid_completion(text))

    def test_normal_text(self):
        self.assertTrue(is_valid_completion("Gas is 20 gwei."))

    def test_marker_with_padding_rejected(self):
        self.assertFalse(is_valid_completion(f"  {NO_VALID_RESPONSE}\n"))

    def test_reply_quoting_a_marker_kept(self):
        text = 'If a node times out you may see "No response from model"; just ask again.'
        self.assertTrue(is_valid_completion(text))


if __name__ == "__main__":
    unittest.main()
