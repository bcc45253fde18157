"""
Chain Tutor - Function Executor
Dispatches approved function calls to the blockchain backend.

The executor never talks to a chain itself. It validates the call, maps
its name onto a CapabilityBackend method, and converts whatever the
backend returns or raises into an ExecutionResult. Failures are reported,
never raised, and are not retried here.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

import requests

from capabilities.errors import CapabilityError, CapabilityErrorType
from capabilities.registry import Capability, lookup, missing_arguments
from capabilities.transactions import extract_transaction_hash
from conversation.models import FunctionCall, FunctionCallStatus
from core.logger import log_info, log_warning, log_error


class CapabilityBackend(ABC):
    """
    Interface to the external blockchain capability layer.

    Each method performs one capability and returns a mapping whose shape
    is capability-specific. Methods that submit a transaction include its
    hash under "txHash". Implementations signal failure by raising,
    preferably a CapabilityError.
    """

    @abstractmethod
    def get_token_balance(self, token_address: str, wallet_address: str) -> Mapping[str, Any]:
        pass

    @abstractmethod
    def get_token_price(self, token_symbol: str) -> Mapping[str, Any]:
        pass

    @abstractmethod
    def get_gas_price(self, chain: str) -> Mapping[str, Any]:
        pass

    @abstractmethod
    def send_token(self, token_address: str, to_address: str, amount: str) -> Mapping[str, Any]:
        pass

    @abstractmethod
    def swap_tokens(self, token_in: str, token_out: str, amount_in: str) -> Mapping[str, Any]:
        pass

    @abstractmethod
    def add_liquidity(
        self, token_a: str, token_b: str, amount_a: str, amount_b: str
    ) -> Mapping[str, Any]:
        pass

    @abstractmethod
    def explain_transaction(self, transaction_hash: str, chain_id: str) -> Mapping[str, Any]:
        pass

    @abstractmethod
    def estimate_gas(
        self, from_address: str, to_address: str, data: str, value: str
    ) -> Mapping[str, Any]:
        pass


@dataclass
class ExecutionResult:
    """
    Outcome of one execution attempt.

    Exactly one of `data` and `error` is set.
    """
    call_id: str
    name: str
    data: Optional[Dict[str, Any]] = None
    error: Optional[CapabilityError] = None

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def transaction_hash(self) -> Optional[str]:
        """Hash of the transaction this execution submitted, if any."""
        return extract_transaction_hash(self.data) if self.data else None


def classify_exception(error: Exception) -> CapabilityError:
    """Map an arbitrary backend exception onto the error taxonomy."""
    if isinstance(error, CapabilityError):
        return error
    if isinstance(error, (requests.Timeout, requests.ConnectionError, TimeoutError, ConnectionError)):
        return CapabilityError(
            CapabilityErrorType.NETWORK,
            f"Could not reach the network: {error}",
            hint="Check the RPC endpoint and try again."
        )
    if "revert" in str(error).lower():
        return CapabilityError(CapabilityErrorType.REVERTED, str(error))
    if isinstance(error, (ValueError, TypeError, KeyError)):
        return CapabilityError(CapabilityErrorType.INVALID_ARGUMENTS, str(error))
    return CapabilityError(CapabilityErrorType.BACKEND, str(error) or type(error).__name__)


class FunctionExecutor:
    """
    Executes approved function calls against a CapabilityBackend.

    Maps capability names to handler methods. Each handler pulls its
    arguments out of the call and invokes the matching backend method.
    """

    def __init__(self, backend: CapabilityBackend):
        """
        Initialize the executor.

        Args:
            backend: Collaborator that performs the actual chain operations
        """
        self.backend = backend
        self._handlers: Dict[Capability, Callable[[Mapping[str, Any]], Mapping[str, Any]]] = {
            Capability.GET_TOKEN_BALANCE: self._exec_get_token_balance,
            Capability.GET_TOKEN_PRICE: self._exec_get_token_price,
            Capability.GET_GAS_PRICE: self._exec_get_gas_price,
            Capability.SEND_TOKEN: self._exec_send_token,
            Capability.SWAP_TOKENS: self._exec_swap_tokens,
            Capability.ADD_LIQUIDITY: self._exec_add_liquidity,
            Capability.EXPLAIN_TRANSACTION: self._exec_explain_transaction,
            Capability.ESTIMATE_GAS: self._exec_estimate_gas,
        }

    def supported_capabilities(self) -> set:
        """Capabilities this executor can dispatch."""
        return set(self._handlers)

    def execute(self, call: FunctionCall) -> ExecutionResult:
        """
        Execute an approved function call.

        Args:
            call: FunctionCall in the approved state

        Returns:
            ExecutionResult with data on success or a CapabilityError
        """
        if call.status is not FunctionCallStatus.APPROVED:
            return self._failure(call, CapabilityError(
                CapabilityErrorType.NOT_APPROVED,
                f"{call.name} is {call.status.value}, only approved calls can run"
            ))

        capability = lookup(call.name)
        handler = self._handlers.get(capability) if capability else None
        if handler is None:
            return self._failure(call, CapabilityError(
                CapabilityErrorType.UNKNOWN_CAPABILITY,
                f"Unknown function: {call.name}",
                hint=f"Available functions: {', '.join(c.value for c in self._handlers)}"
            ))

        missing = missing_arguments(call.name, call.arguments)
        if missing:
            return self._failure(call, CapabilityError(
                CapabilityErrorType.INVALID_ARGUMENTS,
                f"{call.name} is missing required arguments: {', '.join(missing)}"
            ))

        log_info(f"Executing function: {call.name} ({call.id})", prefix="🔧")
        try:
            data = handler(call.arguments)
        except Exception as e:
            return self._failure(call, classify_exception(e))

        if not isinstance(data, Mapping):
            data = {"value": data}

        result = ExecutionResult(call_id=call.id, name=call.name, data=dict(data))
        log_info(f"Function {call.name} completed", prefix="✓")
        return result

    def _failure(self, call: FunctionCall, error: CapabilityError) -> ExecutionResult:
        if error.error_type is CapabilityErrorType.BACKEND:
            log_error(f"Function execution error ({call.name}): {error.message}")
        else:
            log_warning(f"Function {call.name} failed: {error.message}")
        return ExecutionResult(call_id=call.id, name=call.name, error=error)

    # =========================================================================
    # Handlers
    # =========================================================================

    def _exec_get_token_balance(self, args: Mapping[str, Any]) -> Mapping[str, Any]:
        return self.backend.get_token_balance(
            token_address=str(args["token_address"]),
            wallet_address=str(args["wallet_address"])
        )

    def _exec_get_token_price(self, args: Mapping[str, Any]) -> Mapping[str, Any]:
        return self.backend.get_token_price(token_symbol=str(args["token_symbol"]))

    def _exec_get_gas_price(self, args: Mapping[str, Any]) -> Mapping[str, Any]:
        return self.backend.get_gas_price(chain=str(args["chain"]))

    def _exec_send_token(self, args: Mapping[str, Any]) -> Mapping[str, Any]:
        return self.backend.send_token(
            token_address=str(args["token_address"]),
            to_address=str(args["to_address"]),
            amount=str(args["amount"])
        )

    def _exec_swap_tokens(self, args: Mapping[str, Any]) -> Mapping[str, Any]:
        return self.backend.swap_tokens(
            token_in=str(args["token_in"]),
            token_out=str(args["token_out"]),
            amount_in=str(args["amount_in"])
        )

    def _exec_add_liquidity(self, args: Mapping[str, Any]) -> Mapping[str, Any]:
        return self.backend.add_liquidity(
            token_a=str(args["token_a"]),
            token_b=str(args["token_b"]),
            amount_a=str(args["amount_a"]),
            amount_b=str(args["amount_b"])
        )

    def _exec_explain_transaction(self, args: Mapping[str, Any]) -> Mapping[str, Any]:
        return self.backend.explain_transaction(
            transaction_hash=str(args["transaction_hash"]),
            chain_id=str(args["chain_id"])
        )

    def _exec_estimate_gas(self, args: Mapping[str, Any]) -> Mapping[str, Any]:
        return self.backend.estimate_gas(
            from_address=str(args["from_address"]),
            to_address=str(args["to_address"]),
            data=str(args["data"]),
            value=str(args["value"])
        )
