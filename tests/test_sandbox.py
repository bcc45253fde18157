"""
Tests for the sandbox capability backend.
"""

import unittest

from capabilities.errors import CapabilityError, CapabilityErrorType
from capabilities.executor import FunctionExecutor
from capabilities.sandbox import SandboxBackend
from conversation.models import FunctionCall, FunctionCallStatus


class TestSandboxBackend(unittest.TestCase):

    def setUp(self):
        self.backend = SandboxBackend(starting_balance="10", native_symbol="ETH")

    def test_gas_price(self):
        self.assertEqual(self.backend.get_gas_price("ethereum"),
                         {"price": "20", "unit": "gwei", "chain": "ethereum"})

    def test_price_lookup(self):
        self.assertEqual(self.backend.get_token_price("eth")["price"], "3200.00")

    def test_unknown_price(self):
        with self.assertRaises(CapabilityError) as ctx:
            self.backend.get_token_price("NOPE")
        self.assertIs(ctx.exception.error_type, CapabilityErrorType.INVALID_ARGUMENTS)

    def test_send_moves_balance_and_hashes_differ(self):
        first = self.backend.send_token("native", "0xdef", "1")
        second = self.backend.send_token("native", "0xdef", "1")
        self.assertNotEqual(first["txHash"], second["txHash"])
        self.assertTrue(first["txHash"].startswith("0x"))
        self.assertEqual(self.backend.get_token_balance("native", "0xabc")["balance"], "8")

    def test_send_more_than_balance_reverts(self):
        with self.assertRaises(CapabilityError) as ctx:
            self.backend.send_token("native", "0xdef", "11")
        self.assertIs(ctx.exception.error_type, CapabilityErrorType.REVERTED)

    def test_invalid_amount(self):
        with self.assertRaises(ValueError):
            self.backend.send_token("native", "0xdef", "lots")

    def test_swap_then_explain(self):
        swap = self.backend.swap_tokens("ETH", "USDC", "1")
        self.assertEqual(swap["amountOut"], "3190.400000")
        explained = self.backend.explain_transaction(swap["txHash"], "1")
        self.assertIn("Swapped 1 ETH", explained["summary"])

    def test_failed_liquidity_leaves_balances(self):
        with self.assertRaises(CapabilityError):
            self.backend.add_liquidity("ETH", "USDC", "1", "50")
        self.assertEqual(self.backend.get_token_balance("ETH", "0x")["balance"], "10")

    def test_estimate_gas_transfer(self):
        estimate = self.backend.estimate_gas("0x1", "0x2", "0x", "0")
        self.assertEqual(estimate["gasLimit"], "21000")
        self.assertEqual(estimate["cost"], "0.00042 ETH")

    def test_through_executor(self):
        executor = FunctionExecutor(self.backend)
        call = FunctionCall(
            name="send_token",
            arguments={"token_address": "native", "to_address": "0x2", "amount": "abc"},
            status=FunctionCallStatus.APPROVED
        )
        result = executor.execute(call)
        self.assertIs(result.error.error_type, CapabilityErrorType.INVALID_ARGUMENTS)


if __name__ == "__main__":
    unittest.main()
