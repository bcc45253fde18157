"""
Tests for extracting function calls from model completions.

Covers the marker convention, both argument channels, malformed input
and the first-marker-wins policy for replies with several markers.
"""

import unittest

from capabilities.parser import parse_response


class TestPlainReplies(unittest.TestCase):
    """Text without a marker passes through unchanged."""

    def test_no_marker(self):
        text = "Gas fees pay validators for including your transaction."
        parsed = parse_response(text)
        self.assertEqual(parsed.display_text, text)
        self.assertIsNone(parsed.invocation)
        self.assertFalse(parsed.has_invocation())

    def test_empty_and_none(self):
        self.assertEqual(parse_response("").display_text, "")
        self.assertEqual(parse_response(None).display_text, "")
        self.assertIsNone(parse_response(None).invocation)

    def test_marker_with_whitespace_in_name_is_not_a_marker(self):
        text = "[FUNCTION_CALL:get gas]"
        parsed = parse_response(text)
        self.assertIsNone(parsed.invocation)
        self.assertEqual(parsed.display_text, text)


class TestMarkers(unittest.TestCase):
    """Marker detection and removal."""

    def test_marker_without_arguments(self):
        parsed = parse_response("Gas is low. [FUNCTION_CALL:get_gas_price]")
        self.assertEqual(parsed.display_text, "Gas is low. ")
        self.assertEqual(parsed.invocation.name, "get_gas_price")
        self.assertEqual(parsed.invocation.arguments, {})

    def test_unknown_name_passes_through(self):
        parsed = parse_response("[FUNCTION_CALL:launch_rocket]")
        self.assertEqual(parsed.invocation.name, "launch_rocket")
        self.assertEqual(parsed.display_text, "")

    def test_marker_in_middle(self):
        parsed = parse_response("Let me check. [FUNCTION_CALL:get_gas_price] One moment.")
        self.assertEqual(parsed.display_text, "Let me check.  One moment.")

    def test_only_first_marker_honored(self):
        text = "[FUNCTION_CALL:get_gas_price] then [FUNCTION_CALL:send_token]"
        parsed = parse_response(text)
        self.assertEqual(parsed.invocation.name, "get_gas_price")
        self.assertEqual(parsed.display_text, " then [FUNCTION_CALL:send_token]")


class TestArguments(unittest.TestCase):
    """JSON arguments after the marker or in a fenced block."""

    def test_inline_json_after_marker(self):
        parsed = parse_response('Checking. [FUNCTION_CALL:get_token_price] {"token_symbol": "ETH"}')
        self.assertEqual(parsed.invocation.arguments, {"token_symbol": "ETH"})
        self.assertEqual(parsed.display_text, "Checking. ")

    def test_inline_json_on_next_line(self):
        text = 'Sure.\n[FUNCTION_CALL:send_token]\n{"token_address": "native", "to_address": "0xabc", "amount": "0.1"}\nDone.'
        parsed = parse_response(text)
        self.assertEqual(parsed.invocation.arguments["amount"], "0.1")
        self.assertEqual(parsed.display_text, "Sure.\n\nDone.")

    def test_fenced_json_block(self):
        text = 'I will swap. [FUNCTION_CALL:swap_tokens]\n```json\n{"token_in": "ETH", "token_out": "USDC", "amount_in": "1"}\n```'
        parsed = parse_response(text)
        self.assertEqual(parsed.invocation.arguments["token_out"], "USDC")
        self.assertNotIn("```", parsed.display_text)

    def test_fenced_block_before_marker_is_not_arguments(self):
        text = 'Example:\n```json\n{"token_symbol": "BTC"}\n```\nNow: [FUNCTION_CALL:get_gas_price]'
        parsed = parse_response(text)
        self.assertEqual(parsed.invocation.name, "get_gas_price")
        self.assertEqual(parsed.invocation.arguments, {})
        self.assertIn('{"token_symbol": "BTC"}', parsed.display_text)

    def test_first_fenced_block_after_marker_wins(self):
        text = ('```json\n{"amount_in": "99"}\n```\n[FUNCTION_CALL:swap_tokens]\n'
                '```json\n{"token_in": "ETH", "token_out": "DAI", "amount_in": "1"}\n```\n'
                '```json\n{"amount_in": "5"}\n```')
        parsed = parse_response(text)
        self.assertEqual(parsed.invocation.arguments["amount_in"], "1")
        self.assertIn('{"amount_in": "99"}', parsed.display_text)
        self.assertIn('{"amount_in": "5"}', parsed.display_text)

    def test_malformed_json_defaults_to_empty(self):
        text = "[FUNCTION_CALL:get_token_price] {token_symbol: ETH}"
        parsed = parse_response(text)
        self.assertEqual(parsed.invocation.arguments, {})
        self.assertEqual(parsed.display_text, " {token_symbol: ETH}")

    def test_non_object_json_ignored(self):
        parsed = parse_response('[FUNCTION_CALL:get_token_price] ["ETH"]')
        self.assertEqual(parsed.invocation.arguments, {})

    def test_malformed_fenced_block_left_in_text(self):
        text = "[FUNCTION_CALL:get_gas_price]\n```json\n{not json}\n```"
        parsed = parse_response(text)
        self.assertEqual(parsed.invocation.arguments, {})
        self.assertIn("{not json}", parsed.display_text)


if __name__ == "__main__":
    unittest.main()
