"""
Chain Tutor - Sandbox Backend
Deterministic simulated capability results for lessons without a wallet.

Nothing here touches a chain. Prices come from a fixed table, gas is a
flat 20 gwei, and transaction hashes are derived from the call arguments
and a counter so every simulated transaction gets a distinct, stable hash.
"""

import hashlib
import itertools
import threading
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping

from capabilities.errors import CapabilityError, CapabilityErrorType
from capabilities.executor import CapabilityBackend

# USD prices used by the sandbox
PRICE_TABLE: Dict[str, str] = {
    "ETH": "3200.00",
    "BTC": "64000.00",
    "BNB": "580.00",
    "SOL": "150.00",
    "MATIC": "0.70",
    "ARB": "1.10",
    "USDC": "1.00",
    "USDT": "1.00",
    "DAI": "1.00",
}

GAS_PRICE_GWEI = "20"
TRANSFER_GAS = 21000
CONTRACT_CALL_GAS = 120000


def _to_decimal(value: str, field: str) -> Decimal:
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{field} must be a number, got {value!r}")
    if amount <= 0:
        raise ValueError(f"{field} must be positive, got {value}")
    return amount


class SandboxBackend(CapabilityBackend):
    """
    In-memory stand-in for the blockchain capability layer.

    Balances start from a fixed amount per token and move with sends and
    swaps, so a lesson can show cause and effect.
    """

    def __init__(self, starting_balance: str = "10", native_symbol: str = "ETH"):
        self.native_symbol = native_symbol
        self._starting_balance = Decimal(starting_balance)
        self._balances: Dict[str, Decimal] = {}
        self._transactions: Dict[str, Dict[str, Any]] = {}
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def _symbol(self, token: str) -> str:
        return self.native_symbol if token == "native" else token.upper()

    def _balance(self, symbol: str) -> Decimal:
        return self._balances.setdefault(symbol, self._starting_balance)

    def _price(self, symbol: str) -> Decimal:
        if symbol not in PRICE_TABLE:
            raise CapabilityError(
                CapabilityErrorType.INVALID_ARGUMENTS,
                f"No price available for {symbol}",
                hint=f"Known tokens: {', '.join(PRICE_TABLE)}"
            )
        return Decimal(PRICE_TABLE[symbol])

    def _require(self, symbol: str, amount: Decimal) -> None:
        balance = self._balance(symbol)
        if amount > balance:
            raise CapabilityError(
                CapabilityErrorType.REVERTED,
                f"Transaction reverted: insufficient {symbol} balance ({balance} < {amount})"
            )

    def _debit(self, symbol: str, amount: Decimal) -> None:
        self._require(symbol, amount)
        self._balances[symbol] -= amount

    def _new_hash(self, kind: str, details: Mapping[str, Any]) -> str:
        seed = f"{kind}:{sorted(details.items())}:{next(self._counter)}"
        return "0x" + hashlib.sha256(seed.encode("utf-8")).hexdigest()

    def _record(self, kind: str, details: Dict[str, Any]) -> str:
        tx_hash = self._new_hash(kind, details)
        self._transactions[tx_hash] = {"type": kind, **details}
        return tx_hash

    # =========================================================================
    # Read-only capabilities
    # =========================================================================

    def get_token_balance(self, token_address: str, wallet_address: str) -> Mapping[str, Any]:
        symbol = self._symbol(token_address)
        with self._lock:
            balance = self._balance(symbol)
        return {"balance": str(balance), "token": symbol, "wallet_address": wallet_address}

    def get_token_price(self, token_symbol: str) -> Mapping[str, Any]:
        symbol = token_symbol.upper()
        return {"price": str(self._price(symbol)), "currency": "USD", "token_symbol": symbol}

    def get_gas_price(self, chain: str) -> Mapping[str, Any]:
        return {"price": GAS_PRICE_GWEI, "unit": "gwei", "chain": chain}

    def explain_transaction(self, transaction_hash: str, chain_id: str) -> Mapping[str, Any]:
        with self._lock:
            details = self._transactions.get(transaction_hash)
        if details is None:
            raise CapabilityError(
                CapabilityErrorType.INVALID_ARGUMENTS,
                f"Transaction {transaction_hash} not found on chain {chain_id}",
                hint="Only transactions made in this sandbox session can be explained."
            )
        kind = details["type"]
        if kind == "send_token":
            summary = f"Transferred {details['amount']} {details['token']} to {details['to']}."
        elif kind == "swap_tokens":
            summary = (f"Swapped {details['amountIn']} {details['tokenIn']} for "
                       f"{details['amountOut']} {details['tokenOut']} through a liquidity pool.")
        else:
            summary = (f"Deposited {details['amountA']} {details['tokenA']} and "
                       f"{details['amountB']} {details['tokenB']} into a liquidity pool.")
        return {"hash": transaction_hash, "chainId": chain_id, "summary": summary, **details}

    def estimate_gas(self, from_address: str, to_address: str, data: str, value: str) -> Mapping[str, Any]:
        is_transfer = data in ("", "0x")
        gas = TRANSFER_GAS if is_transfer else CONTRACT_CALL_GAS
        fee_gwei = Decimal(gas) * Decimal(GAS_PRICE_GWEI)
        fee = fee_gwei / Decimal(10 ** 9)
        return {
            "gasLimit": str(gas),
            "gasPrice": GAS_PRICE_GWEI,
            "unit": "gwei",
            "cost": f"{fee.normalize()} {self.native_symbol}",
        }

    # =========================================================================
    # Mutating capabilities
    # =========================================================================

    def send_token(self, token_address: str, to_address: str, amount: str) -> Mapping[str, Any]:
        symbol = self._symbol(token_address)
        value = _to_decimal(amount, "amount")
        with self._lock:
            self._debit(symbol, value)
            tx_hash = self._record("send_token", {"token": symbol, "to": to_address, "amount": str(value)})
        return {"txHash": tx_hash, "status": "success"}

    def swap_tokens(self, token_in: str, token_out: str, amount_in: str) -> Mapping[str, Any]:
        symbol_in, symbol_out = self._symbol(token_in), self._symbol(token_out)
        value_in = _to_decimal(amount_in, "amount_in")
        # 0.3% pool fee
        value_out = (value_in * self._price(symbol_in) / self._price(symbol_out)) * Decimal("0.997")
        value_out = value_out.quantize(Decimal("0.000001"))
        with self._lock:
            self._debit(symbol_in, value_in)
            self._balances[symbol_out] = self._balance(symbol_out) + value_out
            tx_hash = self._record("swap_tokens", {
                "tokenIn": symbol_in, "tokenOut": symbol_out,
                "amountIn": str(value_in), "amountOut": str(value_out),
            })
        return {"txHash": tx_hash, "status": "success", "amountOut": str(value_out)}

    def add_liquidity(self, token_a: str, token_b: str, amount_a: str, amount_b: str) -> Mapping[str, Any]:
        symbol_a, symbol_b = self._symbol(token_a), self._symbol(token_b)
        value_a = _to_decimal(amount_a, "amount_a")
        value_b = _to_decimal(amount_b, "amount_b")
        lp_tokens = (value_a * value_b).sqrt().quantize(Decimal("0.000001"))
        with self._lock:
            self._require(symbol_a, value_a)
            self._require(symbol_b, value_b)
            self._debit(symbol_a, value_a)
            self._debit(symbol_b, value_b)
            tx_hash = self._record("add_liquidity", {
                "tokenA": symbol_a, "tokenB": symbol_b,
                "amountA": str(value_a), "amountB": str(value_b),
            })
        return {"txHash": tx_hash, "status": "success", "lpTokens": str(lp_tokens)}
