"""
Chain Tutor - Result Interpreter
Turns executed capability results into explanations for the learner.

The model is asked first, with the interpretation instruction and the
function message. When it fails, returns nothing, or returns a known
placeholder, a deterministic template for the capability is used instead.
Templates never raise.
"""

import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from capabilities.errors import CapabilityError
from capabilities.registry import Capability, lookup
from conversation.models import FunctionCall
from conversation.prompts import build_interpretation_prompt
from conversation.topics import DEFAULT_TOPIC, TopicContext
from core.logger import log_info, log_warning, log_error
from llm.router import LLMRouter, is_valid_completion

LAST_RESORT_TEXT = "The function ran, but its result could not be summarized."


@dataclass
class Interpretation:
    """An explanation and where it came from."""
    text: str
    used_fallback: bool
    provider: Optional[str] = None


def _unit_for(call: FunctionCall, native_symbol: str, default: str = "tokens") -> str:
    return native_symbol if call.arguments.get("token_address") == "native" else default


def _dump(data: Any) -> str:
    return json.dumps(data, indent=2, default=str)


class ResultInterpreter:
    """
    Explains function results in the context of the current topic.

    Holds no conversation state; the session passes in the call and topic.
    """

    def __init__(self, router: Optional[LLMRouter], native_symbol: str = "ETH"):
        """
        Initialize the interpreter.

        Args:
            router: Model gateway; None means always use the templates
            native_symbol: Symbol shown when token_address is "native"
        """
        self.router = router
        self.native_symbol = native_symbol
        self._templates: Dict[Capability, Callable[[FunctionCall, Mapping[str, Any], TopicContext], str]] = {
            Capability.GET_TOKEN_BALANCE: self._balance_text,
            Capability.GET_TOKEN_PRICE: self._price_text,
            Capability.GET_GAS_PRICE: self._gas_text,
            Capability.SEND_TOKEN: self._send_text,
            Capability.SWAP_TOKENS: self._swap_text,
            Capability.ADD_LIQUIDITY: self._liquidity_text,
            Capability.EXPLAIN_TRANSACTION: self._explain_text,
            Capability.ESTIMATE_GAS: self._estimate_text,
        }

    # =========================================================================
    # Function message payload
    # =========================================================================

    def format_result_payload(self, call: FunctionCall, result: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Reduce a raw result to the fields the model needs.

        Args:
            call: The executed call
            result: Raw capability result

        Returns:
            Capability-specific mapping; unknown capabilities pass through
        """
        args = call.arguments
        capability = lookup(call.name)

        if capability is Capability.GET_TOKEN_BALANCE:
            return {
                "balance": result.get("balance"),
                "token": result.get("token") or _unit_for(call, self.native_symbol, "TOKEN"),
                "wallet_address": args.get("wallet_address"),
            }
        if capability is Capability.GET_TOKEN_PRICE:
            return {
                "price": result.get("price"),
                "currency": "USD",
                "token_symbol": args.get("token_symbol"),
            }
        if capability is Capability.SEND_TOKEN:
            return {
                "txHash": result.get("txHash"),
                "status": result.get("status"),
                "amount": args.get("amount"),
                "token": _unit_for(call, self.native_symbol, "TOKEN"),
                "to_address": args.get("to_address"),
            }
        if capability is Capability.SWAP_TOKENS:
            return {
                "txHash": result.get("txHash"),
                "status": result.get("status"),
                "amountIn": args.get("amount_in"),
                "amountOut": result.get("amountOut"),
                "tokenIn": args.get("token_in"),
                "tokenOut": args.get("token_out"),
            }
        if capability is Capability.GET_GAS_PRICE:
            return {
                "price": result.get("price"),
                "unit": result.get("unit"),
                "chain": args.get("chain"),
            }
        return dict(result)

    def serialize_result(self, call: FunctionCall, result: Mapping[str, Any]) -> str:
        """Content of the function message carrying this result."""
        return json.dumps(self.format_result_payload(call, result), default=str)

    # =========================================================================
    # Interpretation
    # =========================================================================

    def interpret(self, call: FunctionCall, topic: Optional[TopicContext] = None) -> Interpretation:
        """
        Explain an executed call's result.

        Args:
            call: FunctionCall in the executed state
            topic: Current lesson topic

        Returns:
            Interpretation with non-empty text
        """
        topic = topic or DEFAULT_TOPIC
        result = call.result or {}

        if self.router is not None:
            messages = [{
                "role": "function",
                "name": call.name,
                "content": self.serialize_result(call, result),
            }]
            try:
                response = self.router.chat(
                    messages=messages,
                    system_prompt=build_interpretation_prompt(call.name, topic)
                )
            except Exception as e:
                log_error(f"Interpretation request for {call.name} raised: {e}")
            else:
                if response.success and is_valid_completion(response.text):
                    return Interpretation(
                        text=response.text.strip(),
                        used_fallback=False,
                        provider=response.provider.value
                    )
                log_warning(
                    f"No usable interpretation for {call.name} "
                    f"({response.error_type or 'invalid response'}), using template"
                )

        log_info(f"Fallback interpretation for {call.name}", prefix="📝")
        return Interpretation(text=self.fallback_text(call, result, topic), used_fallback=True)

    def fallback_text(
        self,
        call: FunctionCall,
        result: Optional[Mapping[str, Any]],
        topic: Optional[TopicContext] = None
    ) -> str:
        """
        Deterministic explanation for a result. Never raises.

        Args:
            call: The executed call
            result: Its result
            topic: Current lesson topic

        Returns:
            Non-empty explanation text
        """
        topic = topic or DEFAULT_TOPIC
        result = result if isinstance(result, Mapping) else {"value": result}

        capability = lookup(call.name)
        template = self._templates.get(capability) if capability else None
        if template is not None:
            try:
                return template(call, result, topic)
            except Exception as e:
                log_warning(f"Template for {call.name} failed ({e}), using generic text")

        try:
            return self._generic_text(call, result, topic)
        except Exception as e:
            log_error(f"Generic template failed for {call.name}: {e}")
            return LAST_RESORT_TEXT

    def explain_failure(
        self,
        call: FunctionCall,
        error: CapabilityError,
        topic: Optional[TopicContext] = None
    ) -> str:
        """Text appended when an approved call could not be executed."""
        topic = topic or DEFAULT_TOPIC
        text = f"I couldn't complete {call.name}.\n{error.format_for_display()}"
        if error.error_type.retryable:
            text += f"\nThe call is still approved, so you can retry it (id: {call.id})."
        else:
            text += (
                f"\nNothing was changed on chain. Feel free to keep exploring "
                f"{topic.name} or ask me to try a different request."
            )
        return text

    # =========================================================================
    # Templates
    # =========================================================================

    def _balance_text(self, call, result, topic) -> str:
        token = result.get("token") or "token"
        unit = _unit_for(call, self.native_symbol, result.get("token") or "tokens")
        if topic.id == "lending":
            extra = "For lending protocols, your balance determines how much you can lend or use as collateral."
        elif topic.id == "dex":
            extra = "When using decentralized exchanges, knowing your balance is essential for planning trades."
        else:
            extra = "This information is fundamental to participating in any DeFi activity."
        return (
            f"Your {token} balance is {result.get('balance')} {unit}.\n\n"
            f"In {topic.name}, understanding your token balances is important because it helps "
            f"you track your assets and make informed decisions. {extra}"
        )

    def _price_text(self, call, result, topic) -> str:
        symbol = call.arguments.get("token_symbol") or result.get("token_symbol") or "this token"
        if topic.id == "dex":
            extra = "When trading on DEXs, price data helps you determine if you're getting a fair exchange rate."
        elif topic.id == "staking":
            extra = "For staking and yield farming, token prices help calculate your actual APY in dollar terms."
        else:
            extra = "Monitoring prices helps you make better decisions about when to buy, sell, or hold assets."
        return (
            f"The current price of {symbol} is ${result.get('price')}.\n\n"
            f"Price information is crucial in {topic.name} as it affects the value of your assets "
            f"and potential returns on investments. {extra}"
        )

    def _gas_text(self, call, result, topic) -> str:
        if topic.id == "dex":
            extra = "When using DEXs, high gas prices can significantly impact the profitability of smaller trades."
        elif topic.id == "lending":
            extra = ("For lending platforms, understanding gas costs helps you determine if smaller "
                     "deposits or withdrawals are economical.")
        else:
            extra = "Being aware of gas prices helps you time your transactions to minimize fees."
        return (
            f"The current gas price is {result.get('price')} {result.get('unit', 'gwei')}.\n\n"
            f"Gas prices are important to monitor in {topic.name} because they affect the cost "
            f"of transactions on the blockchain. {extra}"
        )

    def _send_text(self, call, result, topic) -> str:
        args = call.arguments
        if topic.id == "wallets":
            extra = "This demonstrates how your wallet interacts with the blockchain to transfer assets securely."
        else:
            extra = ("This transaction has been recorded on the blockchain and is now immutable "
                     "and transparent, key principles of DeFi.")
        return (
            f"Transaction sent! {args.get('amount')} {_unit_for(call, self.native_symbol)} have been "
            f"sent to {args.get('to_address')}. Transaction hash: {result.get('txHash')}\n\n"
            f"In {topic.name}, transactions like this represent the fundamental way value moves "
            f"between addresses on the blockchain. {extra}"
        )

    def _swap_text(self, call, result, topic) -> str:
        args = call.arguments
        if topic.id == "dex":
            extra = ("This swap was executed through liquidity pools rather than a traditional order "
                     "book, demonstrating how AMMs (Automated Market Makers) work.")
        else:
            extra = ("This demonstrates how DeFi enables permissionless trading without "
                     "intermediaries, one of the key innovations of decentralized finance.")
        return (
            f"Swap completed! You received {result.get('amountOut')} {args.get('token_out')} in "
            f"exchange for {args.get('amount_in')} {args.get('token_in')}. "
            f"Transaction hash: {result.get('txHash')}\n\n"
            f"Token swaps are a core function in {topic.name}, especially for decentralized "
            f"exchanges. {extra}"
        )

    def _liquidity_text(self, call, result, topic) -> str:
        args = call.arguments
        lp = result.get("lpTokens") or result.get("liquidity")
        minted = f" You received {lp} LP tokens representing your share of the pool." if lp else ""
        return (
            f"Liquidity added! You deposited {args.get('amount_a')} {args.get('token_a')} and "
            f"{args.get('amount_b')} {args.get('token_b')} into the pool.{minted} "
            f"Transaction hash: {result.get('txHash')}\n\n"
            f"In {topic.name}, liquidity providers earn a share of trading fees, but price "
            f"changes between the two tokens can cause impermanent loss."
        )

    def _explain_text(self, call, result, topic) -> str:
        summary = result.get("summary") or result.get("description")
        body = summary if summary else _dump(result)
        return (
            f"Here is what transaction {call.arguments.get('transaction_hash')} did:\n{body}\n\n"
            f"Reading transactions like this is a good way to see how {topic.name} works on chain."
        )

    def _estimate_text(self, call, result, topic) -> str:
        gas = result.get("gasLimit") or result.get("gas") or result.get("estimate")
        cost = result.get("cost") or result.get("fee")
        cost_text = f", costing about {cost}" if cost else ""
        return (
            f"This transaction would use roughly {gas} gas{cost_text}.\n\n"
            f"Estimating gas before sending helps you avoid failed transactions and overpaying "
            f"fees in {topic.name}."
        )

    def _generic_text(self, call, result, topic) -> str:
        return (
            f"Function {call.name} executed successfully: {_dump(result)}\n\n"
            f"This information is relevant to {topic.name} because it provides data that can "
            f"help you make more informed decisions in the DeFi ecosystem."
        )
