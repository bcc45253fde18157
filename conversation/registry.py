"""
Chain Tutor - Function Call Registry
Append-only store of function calls and their approval state machine.

    pending  --approve-->  approved  --execute(result)-->  executed
    pending  --reject-->   rejected

Executor failures leave a call in `approved`. Rejected and executed calls
are terminal. Any other transition is refused: set_status() returns False,
logs a warning and leaves the record unchanged.
"""

import threading
from typing import Any, Callable, Dict, List, Mapping, Optional

from capabilities.registry import is_read_only
from conversation.models import FunctionCall, FunctionCallStatus
from core.logger import log_info, log_warning

# (from, to) pairs the state machine allows
ALLOWED_TRANSITIONS = {
    (FunctionCallStatus.PENDING, FunctionCallStatus.APPROVED),
    (FunctionCallStatus.PENDING, FunctionCallStatus.REJECTED),
    (FunctionCallStatus.APPROVED, FunctionCallStatus.EXECUTED),
}


class FunctionCallRegistry:
    """
    Per-conversation store of FunctionCall records.

    Records are kept in creation order and are never removed individually;
    clear() empties the whole store as part of a conversation reset.
    """

    def __init__(
        self,
        auto_approve_read_only: bool = True,
        classifier: Callable[[str], bool] = is_read_only
    ):
        """
        Initialize the registry.

        Args:
            auto_approve_read_only: Approve read-only calls at enqueue time
            classifier: Predicate deciding whether a name is read-only
        """
        self.auto_approve_read_only = auto_approve_read_only
        self._is_read_only = classifier
        self._calls: Dict[str, FunctionCall] = {}
        self._lock = threading.RLock()

    def enqueue(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> FunctionCall:
        """
        Create a pending call, auto-approving it if it is read-only.

        Args:
            name: Capability name (unknown names are accepted and stay pending)
            arguments: Call arguments

        Returns:
            The stored FunctionCall
        """
        call = FunctionCall(name=name, arguments=dict(arguments or {}))
        with self._lock:
            while call.id in self._calls:
                call = FunctionCall(name=name, arguments=call.arguments)
            self._calls[call.id] = call
            log_info(f"Function call queued: {name} ({call.id})", prefix="📥")

            if self.auto_approve_read_only and self._is_read_only(name):
                self.set_status(call.id, FunctionCallStatus.APPROVED)
                log_info(f"Auto-approved read-only call: {name}", prefix="✓")
        return call

    def set_status(
        self,
        call_id: str,
        status: FunctionCallStatus,
        result: Optional[Mapping[str, Any]] = None
    ) -> bool:
        """
        Apply a state transition.

        Args:
            call_id: Target call
            status: New status
            result: Capability result, required exactly when status is EXECUTED

        Returns:
            True if the transition was applied
        """
        with self._lock:
            call = self._calls.get(call_id)
            if call is None:
                log_warning(f"Unknown function call id: {call_id}")
                return False

            if (call.status, status) not in ALLOWED_TRANSITIONS:
                log_warning(
                    f"Refused transition for {call.name} ({call_id}): "
                    f"{call.status.value} -> {status.value}"
                )
                return False

            if status is FunctionCallStatus.EXECUTED and result is None:
                log_warning(f"Refused transition for {call.name} ({call_id}): executed without a result")
                return False
            if status is not FunctionCallStatus.EXECUTED and result is not None:
                log_warning(f"Refused transition for {call.name} ({call_id}): result only allowed when executed")
                return False

            call.status = status
            if result is not None:
                call.result = dict(result)
            log_info(f"Function call {call.name} ({call_id}) -> {status.value}", prefix="🔁")
            return True

    def approve(self, call_id: str) -> bool:
        return self.set_status(call_id, FunctionCallStatus.APPROVED)

    def reject(self, call_id: str) -> bool:
        return self.set_status(call_id, FunctionCallStatus.REJECTED)

    def get(self, call_id: str) -> Optional[FunctionCall]:
        with self._lock:
            return self._calls.get(call_id)

    def calls(self) -> List[FunctionCall]:
        """All calls in creation order."""
        with self._lock:
            return list(self._calls.values())

    def with_status(self, status: FunctionCallStatus) -> List[FunctionCall]:
        with self._lock:
            return [c for c in self._calls.values() if c.status is status]

    def pending(self) -> List[FunctionCall]:
        """Calls awaiting a human decision."""
        return self.with_status(FunctionCallStatus.PENDING)

    def clear(self) -> None:
        """Remove every call. Only used by a conversation reset."""
        with self._lock:
            count = len(self._calls)
            self._calls.clear()
        log_info(f"Function call registry cleared ({count} calls)", prefix="🧹")

    def __len__(self) -> int:
        with self._lock:
            return len(self._calls)
