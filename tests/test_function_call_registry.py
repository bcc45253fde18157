"""
Tests for the function call state machine.

Terminal states never change, executed calls always carry a result, and
read-only calls are approved at enqueue time while mutating calls wait.
"""

import threading
import unittest

from conversation.models import FunctionCall, FunctionCallStatus, Message, MessageRole
from conversation.registry import FunctionCallRegistry

ALL_STATUSES = list(FunctionCallStatus)


class TestEnqueue(unittest.TestCase):
    """Creation and auto-approval."""

    def setUp(self):
        self.registry = FunctionCallRegistry()

    def test_read_only_call_is_auto_approved(self):
        call = self.registry.enqueue("get_token_price", {"token_symbol": "ETH"})
        self.assertIs(call.status, FunctionCallStatus.APPROVED)

    def test_mutating_call_stays_pending(self):
        call = self.registry.enqueue("send_token", {"token_address": "native"})
        self.assertIs(call.status, FunctionCallStatus.PENDING)
        self.assertEqual(self.registry.pending(), [call])

    def test_unknown_call_stays_pending(self):
        call = self.registry.enqueue("format_hard_drive")
        self.assertIs(call.status, FunctionCallStatus.PENDING)

    def test_auto_approval_can_be_disabled(self):
        registry = FunctionCallRegistry(auto_approve_read_only=False)
        call = registry.enqueue("get_gas_price", {"chain": "ethereum"})
        self.assertIs(call.status, FunctionCallStatus.PENDING)

    def test_ids_are_unique(self):
        ids = {self.registry.enqueue("get_gas_price").id for _ in range(200)}
        self.assertEqual(len(ids), 200)

    def test_arguments_are_copied(self):
        args = {"token_symbol": "ETH"}
        call = self.registry.enqueue("get_token_price", args)
        args["token_symbol"] = "BTC"
        self.assertEqual(call.arguments["token_symbol"], "ETH")

    def test_calls_in_creation_order(self):
        first = self.registry.enqueue("send_token")
        second = self.registry.enqueue("get_gas_price")
        self.assertEqual([c.id for c in self.registry.calls()], [first.id, second.id])


class TestTransitions(unittest.TestCase):
    """Allowed and refused status changes."""

    def setUp(self):
        self.registry = FunctionCallRegistry()

    def _call_in(self, status: FunctionCallStatus) -> FunctionCall:
        call = self.registry.enqueue("send_token")
        if status is FunctionCallStatus.APPROVED:
            self.registry.approve(call.id)
        elif status is FunctionCallStatus.REJECTED:
            self.registry.reject(call.id)
        elif status is FunctionCallStatus.EXECUTED:
            self.registry.approve(call.id)
            self.registry.set_status(call.id, FunctionCallStatus.EXECUTED, {"txHash": "0x1"})
        self.assertIs(call.status, status)
        return call

    def test_human_approval(self):
        call = self._call_in(FunctionCallStatus.PENDING)
        self.assertTrue(self.registry.approve(call.id))
        self.assertIs(call.status, FunctionCallStatus.APPROVED)

    def test_rejection(self):
        call = self._call_in(FunctionCallStatus.PENDING)
        self.assertTrue(self.registry.reject(call.id))
        self.assertIs(call.status, FunctionCallStatus.REJECTED)

    def test_terminal_states_refuse_every_transition(self):
        for terminal in (FunctionCallStatus.REJECTED, FunctionCallStatus.EXECUTED):
            for target in ALL_STATUSES:
                with self.subTest(terminal=terminal, target=target):
                    call = self._call_in(terminal)
                    before = (call.status, call.result)
                    result = {"x": 1} if target is FunctionCallStatus.EXECUTED else None
                    self.assertFalse(self.registry.set_status(call.id, target, result))
                    self.assertEqual((call.status, call.result), before)

    def test_cannot_reject_once_approved(self):
        call = self._call_in(FunctionCallStatus.APPROVED)
        self.assertFalse(self.registry.reject(call.id))
        self.assertIs(call.status, FunctionCallStatus.APPROVED)

    def test_pending_cannot_skip_to_executed(self):
        call = self._call_in(FunctionCallStatus.PENDING)
        self.assertFalse(self.registry.set_status(call.id, FunctionCallStatus.EXECUTED, {"a": 1}))
        self.assertIs(call.status, FunctionCallStatus.PENDING)

    def test_executed_requires_result(self):
        call = self._call_in(FunctionCallStatus.APPROVED)
        self.assertFalse(self.registry.set_status(call.id, FunctionCallStatus.EXECUTED))
        self.assertIs(call.status, FunctionCallStatus.APPROVED)
        self.assertIsNone(call.result)

    def test_result_only_with_executed(self):
        call = self._call_in(FunctionCallStatus.PENDING)
        self.assertFalse(self.registry.set_status(call.id, FunctionCallStatus.APPROVED, {"a": 1}))
        self.assertIsNone(call.result)

    def test_result_present_only_when_executed(self):
        calls = [self._call_in(status) for status in ALL_STATUSES]
        for call in calls:
            with self.subTest(status=call.status):
                if call.status is FunctionCallStatus.EXECUTED:
                    self.assertIsNotNone(call.result)
                else:
                    self.assertIsNone(call.result)

    def test_unknown_id(self):
        self.assertFalse(self.registry.approve("missing"))
        self.assertIsNone(self.registry.get("missing"))

    def test_clear_empties_registry(self):
        self._call_in(FunctionCallStatus.PENDING)
        self._call_in(FunctionCallStatus.EXECUTED)
        self.registry.clear()
        self.assertEqual(len(self.registry), 0)
        self.assertEqual(self.registry.calls(), [])

    def test_concurrent_approvals_apply_once(self):
        call = self._call_in(FunctionCallStatus.PENDING)
        results = []

        def approve():
            results.append(self.registry.approve(call.id))

        threads = [threading.Thread(target=approve) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(results.count(True), 1)


class TestMessages(unittest.TestCase):
    """Message role and name rules."""

    def test_function_message_requires_name(self):
        with self.assertRaises(ValueError):
            Message(role=MessageRole.FUNCTION, content="{}")

    def test_other_roles_cannot_carry_name(self):
        with self.assertRaises(ValueError):
            Message(role=MessageRole.ASSISTANT, content="hi", name="get_gas_price")

    def test_to_dict(self):
        message = Message(role=MessageRole.FUNCTION, content="{}", name="get_gas_price")
        self.assertEqual(message.to_dict(), {"role": "function", "content": "{}", "name": "get_gas_price"})
        self.assertEqual(Message(role=MessageRole.USER, content="hi").to_dict(),
                         {"role": "user", "content": "hi"})


if __name__ == "__main__":
    unittest.main()
