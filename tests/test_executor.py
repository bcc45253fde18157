"""
Tests for dispatching approved calls to the capability backend.

The executor validates before dispatch and converts every backend
failure into a CapabilityError on the result; it never raises.
"""

import unittest
from unittest.mock import MagicMock

import requests

from capabilities.errors import CapabilityError, CapabilityErrorType
from capabilities.executor import CapabilityBackend, FunctionExecutor, classify_exception
from capabilities.registry import Capability
from conversation.models import FunctionCall, FunctionCallStatus


def approved(name: str, **arguments) -> FunctionCall:
    return FunctionCall(name=name, arguments=arguments, status=FunctionCallStatus.APPROVED)


class TestDispatch(unittest.TestCase):
    """Successful execution paths."""

    def setUp(self):
        self.backend = MagicMock(spec=CapabilityBackend)
        self.executor = FunctionExecutor(self.backend)

    def test_handles_every_capability(self):
        self.assertEqual(self.executor.supported_capabilities(), set(Capability))

    def test_gas_price(self):
        self.backend.get_gas_price.return_value = {"price": "20", "unit": "gwei"}
        result = self.executor.execute(approved("get_gas_price", chain="ethereum"))
        self.assertTrue(result.success)
        self.assertEqual(result.data, {"price": "20", "unit": "gwei"})
        self.backend.get_gas_price.assert_called_once_with(chain="ethereum")

    def test_send_token_passes_arguments(self):
        self.backend.send_token.return_value = {"txHash": "0xabc", "status": "success"}
        result = self.executor.execute(
            approved("send_token", token_address="native", to_address="0xdef", amount=0.5)
        )
        self.backend.send_token.assert_called_once_with(
            token_address="native", to_address="0xdef", amount="0.5"
        )
        self.assertEqual(result.transaction_hash, "0xabc")

    def test_estimate_gas(self):
        self.backend.estimate_gas.return_value = {"gasLimit": "21000"}
        result = self.executor.execute(approved(
            "estimate_gas", from_address="0x1", to_address="0x2", data="0x", value="0"
        ))
        self.assertTrue(result.success)
        self.assertIsNone(result.transaction_hash)

    def test_non_mapping_result_is_wrapped(self):
        self.backend.get_token_price.return_value = "3200"
        result = self.executor.execute(approved("get_token_price", token_symbol="ETH"))
        self.assertEqual(result.data, {"value": "3200"})


class TestFailures(unittest.TestCase):
    """Validation and backend errors become CapabilityErrors."""

    def setUp(self):
        self.backend = MagicMock(spec=CapabilityBackend)
        self.executor = FunctionExecutor(self.backend)

    def assertFailure(self, result, error_type):
        self.assertFalse(result.success)
        self.assertIsNone(result.data)
        self.assertIs(result.error.error_type, error_type)

    def test_pending_call_not_executed(self):
        call = FunctionCall(name="send_token", arguments={})
        self.assertFailure(self.executor.execute(call), CapabilityErrorType.NOT_APPROVED)
        self.backend.send_token.assert_not_called()

    def test_unknown_capability(self):
        result = self.executor.execute(approved("launch_rocket"))
        self.assertFailure(result, CapabilityErrorType.UNKNOWN_CAPABILITY)
        self.assertIn("get_gas_price", result.error.hint)

    def test_missing_arguments(self):
        result = self.executor.execute(approved("swap_tokens", token_in="ETH"))
        self.assertFailure(result, CapabilityErrorType.INVALID_ARGUMENTS)
        self.assertIn("token_out", result.error.message)
        self.backend.swap_tokens.assert_not_called()

    def test_network_error(self):
        self.backend.get_gas_price.side_effect = requests.ConnectionError("refused")
        result = self.executor.execute(approved("get_gas_price", chain="ethereum"))
        self.assertFailure(result, CapabilityErrorType.NETWORK)

    def test_revert(self):
        self.backend.send_token.side_effect = RuntimeError("execution reverted: insufficient balance")
        result = self.executor.execute(
            approved("send_token", token_address="native", to_address="0x1", amount="5")
        )
        self.assertFailure(result, CapabilityErrorType.REVERTED)

    def test_backend_capability_error_kept(self):
        self.backend.get_token_price.side_effect = CapabilityError(
            CapabilityErrorType.INVALID_ARGUMENTS, "No price available for XYZ"
        )
        result = self.executor.execute(approved("get_token_price", token_symbol="XYZ"))
        self.assertFailure(result, CapabilityErrorType.INVALID_ARGUMENTS)
        self.assertEqual(result.error.message, "No price available for XYZ")

    def test_unexpected_error(self):
        self.backend.get_gas_price.side_effect = RuntimeError("boom")
        result = self.executor.execute(approved("get_gas_price", chain="ethereum"))
        self.assertFailure(result, CapabilityErrorType.BACKEND)

    def test_call_state_untouched(self):
        self.backend.get_gas_price.side_effect = RuntimeError("boom")
        call = approved("get_gas_price", chain="ethereum")
        self.executor.execute(call)
        self.assertIs(call.status, FunctionCallStatus.APPROVED)
        self.assertIsNone(call.result)


class TestClassifyException(unittest.TestCase):
    """Mapping of arbitrary exceptions onto the error taxonomy."""

    def test_timeouts_are_network(self):
        self.assertIs(classify_exception(requests.Timeout()).error_type, CapabilityErrorType.NETWORK)
        self.assertIs(classify_exception(TimeoutError()).error_type, CapabilityErrorType.NETWORK)

    def test_value_error_is_invalid_arguments(self):
        error = classify_exception(ValueError("amount must be a number"))
        self.assertIs(error.error_type, CapabilityErrorType.INVALID_ARGUMENTS)

    def test_retryable(self):
        self.assertTrue(CapabilityErrorType.NETWORK.retryable)
        self.assertFalse(CapabilityErrorType.REVERTED.retryable)

    def test_display_includes_hint(self):
        error = CapabilityError(CapabilityErrorType.NETWORK, "down", hint="try later")
        self.assertEqual(str(error), "Error (network): down\n  Hint: try later")


if __name__ == "__main__":
    unittest.main()
