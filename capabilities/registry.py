"""
Chain Tutor - Capability Registry
The closed set of blockchain capabilities the model may request.

Every capability carries an effect class. Read-only capabilities only
observe chain state and may run without asking; mutating capabilities
change state and always need the learner's approval. Names outside the
table are treated as mutating so unknown requests never auto-execute.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple


class Capability(Enum):
    """Supported capability names."""
    GET_TOKEN_BALANCE = "get_token_balance"
    GET_TOKEN_PRICE = "get_token_price"
    GET_GAS_PRICE = "get_gas_price"
    SEND_TOKEN = "send_token"
    SWAP_TOKENS = "swap_tokens"
    ADD_LIQUIDITY = "add_liquidity"
    EXPLAIN_TRANSACTION = "explain_transaction"
    ESTIMATE_GAS = "estimate_gas"


class EffectClass(Enum):
    """Whether a capability changes external state."""
    READ_ONLY = "read-only"
    MUTATING = "mutating"


@dataclass(frozen=True)
class CapabilityDefinition:
    """
    Static description of one capability.

    Attributes:
        capability: The capability this entry describes
        effect: Effect class deciding the approval policy
        description: One-line description shown to the model
        parameters: Ordered (argument name, description) pairs, all required
        group: Catalogue section ("blockchain_tools" or "transaction_tools")
    """
    capability: Capability
    effect: EffectClass
    description: str
    parameters: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)
    group: str = "blockchain_tools"

    @property
    def name(self) -> str:
        return self.capability.value

    @property
    def required_arguments(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.parameters)


CAPABILITY_DEFINITIONS: Dict[Capability, CapabilityDefinition] = {
    Capability.GET_TOKEN_BALANCE: CapabilityDefinition(
        capability=Capability.GET_TOKEN_BALANCE,
        effect=EffectClass.READ_ONLY,
        description="Get token balance for an address",
        parameters=(
            ("token_address", "The token address (use 'native' for ETH, BNB, etc.)"),
            ("wallet_address", "The wallet address to check balance for"),
        ),
    ),
    Capability.GET_TOKEN_PRICE: CapabilityDefinition(
        capability=Capability.GET_TOKEN_PRICE,
        effect=EffectClass.READ_ONLY,
        description="Get the price of a token in USD",
        parameters=(
            ("token_symbol", "The token symbol (e.g., ETH, BTC, SOL)"),
        ),
    ),
    Capability.GET_GAS_PRICE: CapabilityDefinition(
        capability=Capability.GET_GAS_PRICE,
        effect=EffectClass.READ_ONLY,
        description="Get the current gas price in Gwei",
        parameters=(
            ("chain", "The blockchain to get gas price for (e.g., ethereum, binance)"),
        ),
    ),
    Capability.SEND_TOKEN: CapabilityDefinition(
        capability=Capability.SEND_TOKEN,
        effect=EffectClass.MUTATING,
        description="Send tokens to an address",
        parameters=(
            ("token_address", "The token address (use 'native' for ETH, BNB, etc.)"),
            ("to_address", "The recipient address"),
            ("amount", "The amount to send"),
        ),
    ),
    Capability.SWAP_TOKENS: CapabilityDefinition(
        capability=Capability.SWAP_TOKENS,
        effect=EffectClass.MUTATING,
        description="Swap tokens on a decentralized exchange",
        parameters=(
            ("token_in", "The input token address or symbol"),
            ("token_out", "The output token address or symbol"),
            ("amount_in", "The input amount"),
        ),
    ),
    Capability.ADD_LIQUIDITY: CapabilityDefinition(
        capability=Capability.ADD_LIQUIDITY,
        effect=EffectClass.MUTATING,
        description="Add liquidity to a DEX pool",
        parameters=(
            ("token_a", "First token address or symbol"),
            ("token_b", "Second token address or symbol"),
            ("amount_a", "Amount of first token"),
            ("amount_b", "Amount of second token"),
        ),
    ),
    Capability.EXPLAIN_TRANSACTION: CapabilityDefinition(
        capability=Capability.EXPLAIN_TRANSACTION,
        effect=EffectClass.READ_ONLY,
        description="Explain a blockchain transaction",
        parameters=(
            ("transaction_hash", "The transaction hash to explain"),
            ("chain_id", "The chain ID (e.g., 1 for Ethereum, 56 for BSC)"),
        ),
        group="transaction_tools",
    ),
    Capability.ESTIMATE_GAS: CapabilityDefinition(
        capability=Capability.ESTIMATE_GAS,
        effect=EffectClass.READ_ONLY,
        description="Estimate gas cost for a transaction",
        parameters=(
            ("from_address", "The sender address"),
            ("to_address", "The recipient address"),
            ("data", "The transaction data (hex)"),
            ("value", "The transaction value in wei"),
        ),
        group="transaction_tools",
    ),
}


def lookup(name: str) -> Optional[Capability]:
    """Resolve a capability name, or None if it is not in the table."""
    try:
        return Capability(name)
    except ValueError:
        return None


def get_definition(name: str) -> Optional[CapabilityDefinition]:
    """Get the static description for a capability name."""
    capability = lookup(name)
    return CAPABILITY_DEFINITIONS[capability] if capability else None


def classify(name: str) -> EffectClass:
    """
    Classify a capability name by effect.

    Unknown names are MUTATING so they can never skip approval.
    """
    definition = get_definition(name)
    return definition.effect if definition else EffectClass.MUTATING


def is_read_only(name: str) -> bool:
    """Check whether a capability may run without approval."""
    return classify(name) is EffectClass.READ_ONLY


def missing_arguments(name: str, arguments: Mapping[str, object]) -> List[str]:
    """
    List required argument keys that are absent or empty.

    Unknown capabilities have no known requirements and return [].
    """
    definition = get_definition(name)
    if definition is None:
        return []
    return [
        key for key in definition.required_arguments
        if arguments.get(key) is None or str(arguments.get(key)).strip() == ""
    ]


def capability_names() -> List[str]:
    """All supported capability names in table order."""
    return [capability.value for capability in Capability]


def get_tool_definitions() -> Dict[str, Dict[str, dict]]:
    """
    Build the grouped tool catalogue sent to function-aware models.

    Returns:
        {"blockchain_tools": {...}, "transaction_tools": {...}} keyed by name
    """
    catalogue: Dict[str, Dict[str, dict]] = {"blockchain_tools": {}, "transaction_tools": {}}
    for definition in CAPABILITY_DEFINITIONS.values():
        catalogue.setdefault(definition.group, {})[definition.name] = {
            "description": definition.description,
            "parameters": {
                param: {"type": "string", "description": description}
                for param, description in definition.parameters
            },
        }
    return catalogue


def get_tool_definitions_json() -> str:
    """The tool catalogue serialized as a JSON string."""
    return json.dumps(get_tool_definitions())


def get_function_instructions() -> str:
    """
    Prompt text teaching the model the invocation marker convention.

    Appended to every conversation system prompt.
    """
    names = ", ".join(capability_names())
    return (
        "If you need to call a Web3 function, include [FUNCTION_CALL:function_name] "
        f"in your response. Available functions: {names}.\n"
        "Put the function's arguments as a JSON object directly after the marker, "
        'for example: [FUNCTION_CALL:get_token_price] {"token_symbol": "ETH"}. '
        "Only request one function per response."
    )


CHAIN_NAMES: Dict[int, str] = {
    1: "ethereum",
    56: "binance",
    137: "polygon",
    42161: "arbitrum",
    421614: "arbitrum-sepolia",
}


def chain_name(chain_id: int) -> str:
    """Human name for a chain id, as the get_gas_price capability expects."""
    return CHAIN_NAMES.get(chain_id, f"chain-{chain_id}")


def with_context_defaults(
    name: str,
    arguments: Mapping[str, object],
    wallet_address: str = "",
    chain_id: Optional[int] = None
) -> Dict[str, object]:
    """
    Fill arguments the model left out from the learner's session.

    Only known parameters that are absent are filled: the wallet address
    for wallet_address/from_address and the current chain for
    chain/chain_id. Values the model supplied are never replaced.
    """
    filled = dict(arguments)
    definition = get_definition(name)
    if definition is None:
        return filled

    defaults: Dict[str, object] = {}
    if wallet_address:
        defaults["wallet_address"] = wallet_address
        defaults["from_address"] = wallet_address
    if chain_id is not None:
        defaults["chain"] = chain_name(chain_id)
        defaults["chain_id"] = str(chain_id)

    for key in definition.required_arguments:
        if key in defaults and (filled.get(key) is None or str(filled.get(key)).strip() == ""):
            filled[key] = defaults[key]
    return filled
