"""
Chain Tutor - Transaction Recorder
Records transactions produced by executed capabilities.

The recorder itself belongs to the display layer (a transaction list);
this module defines its interface, builds the record it receives, and
ships an in-memory implementation used by the CLI and the tests.
Duplicate hashes are the recorder's concern.
"""

import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, TYPE_CHECKING

from capabilities.registry import is_read_only
from core.logger import log_info

if TYPE_CHECKING:
    from conversation.models import FunctionCall

# Result keys that carry a submitted transaction's hash, in priority order.
# A bare "hash" names an existing transaction (explain_transaction) and is not one.
TRANSACTION_HASH_KEYS = ("txHash", "tx_hash")


def extract_transaction_hash(result: Optional[Mapping[str, Any]]) -> Optional[str]:
    """Return the transaction hash in a capability result, if any."""
    if not result:
        return None
    for key in TRANSACTION_HASH_KEYS:
        value = result.get(key)
        if value:
            return str(value)
    return None


@dataclass
class TransactionRecord:
    """
    One on-chain transaction, as shown in the transaction list.

    `timestamp` is epoch milliseconds. `from_address` serializes as "from".
    """
    hash: str
    from_address: str
    to: str
    value: str
    chainId: str
    type: str
    status: str
    method: str
    timestamp: int
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hash": self.hash,
            "from": self.from_address,
            "to": self.to,
            "value": self.value,
            "chainId": self.chainId,
            "type": self.type,
            "status": self.status,
            "method": self.method,
            "timestamp": self.timestamp,
            "description": self.description,
        }


def build_transaction_record(
    call: "FunctionCall",
    result: Mapping[str, Any],
    from_address: str = "",
    chain_id: int = 1,
    native_symbol: str = "ETH",
    timestamp_ms: Optional[int] = None
) -> Optional[TransactionRecord]:
    """
    Build the record for an executed call, or None if it made no transaction.

    Args:
        call: The executed FunctionCall
        result: The capability result
        from_address: Connected wallet address ("" if none)
        chain_id: Chain the call ran on
        native_symbol: Symbol used when token_address is "native"
        timestamp_ms: Override for the record time (epoch ms)
    """
    # Read-only capabilities never submit a transaction
    if is_read_only(call.name):
        return None
    tx_hash = extract_transaction_hash(result)
    if not tx_hash:
        return None

    args = call.arguments
    amount = str(args.get("amount") or args.get("amount_in") or "")
    unit = native_symbol if args.get("token_address") == "native" else "tokens"

    return TransactionRecord(
        hash=tx_hash,
        from_address=from_address or "",
        to=str(args.get("to_address") or ""),
        value=amount or "0",
        chainId=str(chain_id),
        type=call.name,
        status="confirmed",
        method=call.name,
        timestamp=timestamp_ms if timestamp_ms is not None else int(time.time() * 1000),
        description=f"{call.name} - {amount} {unit}"
    )


class TransactionRecorder(ABC):
    """Collaborator that receives transaction records."""

    @abstractmethod
    def append(self, record: TransactionRecord) -> None:
        pass


class InMemoryTransactionRecorder(TransactionRecorder):
    """Thread-safe list of records in arrival order."""

    def __init__(self):
        self._records: List[TransactionRecord] = []
        self._lock = threading.Lock()

    def append(self, record: TransactionRecord) -> None:
        with self._lock:
            self._records.append(record)
        log_info(f"Transaction recorded: {record.hash} ({record.method})", prefix="🧾")

    def records(self) -> List[TransactionRecord]:
        with self._lock:
            return list(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
