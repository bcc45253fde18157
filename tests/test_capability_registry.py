"""
Tests for the capability table and effect classification.

Read-only capabilities may run without asking; everything else, including
names the table does not know, must wait for the learner's approval.
"""

import json
import unittest

from capabilities.registry import (
    CAPABILITY_DEFINITIONS,
    Capability,
    EffectClass,
    capability_names,
    chain_name,
    classify,
    get_function_instructions,
    get_tool_definitions,
    get_tool_definitions_json,
    is_read_only,
    missing_arguments,
    with_context_defaults,
)


EXPECTED_TABLE = {
    "get_token_balance": (EffectClass.READ_ONLY, ("token_address", "wallet_address")),
    "get_token_price": (EffectClass.READ_ONLY, ("token_symbol",)),
    "get_gas_price": (EffectClass.READ_ONLY, ("chain",)),
    "send_token": (EffectClass.MUTATING, ("token_address", "to_address", "amount")),
    "swap_tokens": (EffectClass.MUTATING, ("token_in", "token_out", "amount_in")),
    "add_liquidity": (EffectClass.MUTATING, ("token_a", "token_b", "amount_a", "amount_b")),
    "explain_transaction": (EffectClass.READ_ONLY, ("transaction_hash", "chain_id")),
    "estimate_gas": (EffectClass.READ_ONLY, ("from_address", "to_address", "data", "value")),
}


class TestClassification(unittest.TestCase):
    """Effect classes match the capability table."""

    def test_every_capability_has_a_definition(self):
        self.assertEqual(set(CAPABILITY_DEFINITIONS), set(Capability))

    def test_table_effect_classes(self):
        for name, (effect, _) in EXPECTED_TABLE.items():
            with self.subTest(name=name):
                self.assertIs(classify(name), effect)

    def test_table_required_arguments(self):
        for capability, definition in CAPABILITY_DEFINITIONS.items():
            with self.subTest(name=definition.name):
                self.assertEqual(definition.required_arguments, EXPECTED_TABLE[capability.value][1])

    def test_unknown_names_are_mutating(self):
        for name in ("transfer_everything", "", "GET_GAS_PRICE", "get_gas_price ", "drop_table"):
            with self.subTest(name=name):
                self.assertIs(classify(name), EffectClass.MUTATING)
                self.assertFalse(is_read_only(name))

    def test_is_read_only(self):
        self.assertTrue(is_read_only("get_token_price"))
        self.assertFalse(is_read_only("send_token"))

    def test_capability_names_in_table_order(self):
        self.assertEqual(capability_names(), list(EXPECTED_TABLE))


class TestArguments(unittest.TestCase):
    """Required-argument checks and session defaults."""

    def test_missing_arguments_reports_absent_and_blank(self):
        missing = missing_arguments("send_token", {"token_address": "native", "amount": "  "})
        self.assertEqual(missing, ["to_address", "amount"])

    def test_missing_arguments_complete(self):
        self.assertEqual(missing_arguments("get_gas_price", {"chain": "ethereum"}), [])

    def test_missing_arguments_unknown_capability(self):
        self.assertEqual(missing_arguments("mystery", {}), [])

    def test_context_defaults_fill_chain(self):
        filled = with_context_defaults("get_gas_price", {}, chain_id=56)
        self.assertEqual(filled, {"chain": "binance"})

    def test_context_defaults_fill_wallet(self):
        filled = with_context_defaults(
            "get_token_balance", {"token_address": "native"}, wallet_address="0xabc"
        )
        self.assertEqual(filled["wallet_address"], "0xabc")

    def test_context_defaults_keep_model_values(self):
        filled = with_context_defaults("get_gas_price", {"chain": "polygon"}, chain_id=1)
        self.assertEqual(filled["chain"], "polygon")

    def test_context_defaults_only_touch_known_parameters(self):
        filled = with_context_defaults("get_token_price", {"token_symbol": "ETH"},
                                       wallet_address="0xabc", chain_id=1)
        self.assertEqual(filled, {"token_symbol": "ETH"})

    def test_context_defaults_unknown_capability_unchanged(self):
        self.assertEqual(with_context_defaults("mystery", {"a": 1}, "0xabc", 1), {"a": 1})

    def test_chain_id_default_is_string(self):
        filled = with_context_defaults("explain_transaction", {"transaction_hash": "0x1"}, chain_id=137)
        self.assertEqual(filled["chain_id"], "137")

    def test_chain_name_unknown(self):
        self.assertEqual(chain_name(999), "chain-999")


class TestToolCatalogue(unittest.TestCase):
    """Tool JSON sent to function-aware models."""

    def test_groups(self):
        catalogue = get_tool_definitions()
        self.assertEqual(
            set(catalogue["transaction_tools"]), {"explain_transaction", "estimate_gas"}
        )
        self.assertIn("send_token", catalogue["blockchain_tools"])

    def test_json_round_trips(self):
        data = json.loads(get_tool_definitions_json())
        params = data["blockchain_tools"]["get_token_price"]["parameters"]
        self.assertEqual(params["token_symbol"]["type"], "string")

    def test_instructions_mention_marker_and_every_name(self):
        text = get_function_instructions()
        self.assertIn("[FUNCTION_CALL:function_name]", text)
        for name in capability_names():
            self.assertIn(name, text)


if __name__ == "__main__":
    unittest.main()
