"""
Chain Tutor - Conversation Session
One learner conversation: messages, function calls and the turn loop.

A turn runs: user message -> model -> parser -> (display text, invocation)
-> registry -> executor once approved -> function message -> interpretation
-> transaction record. Every failure ends in a displayable assistant
message; nothing is raised to the interface layer.

Ordering:
    Turns, approvals and retries are serialized per session by a turn lock
    and, for the submit_* variants, a single-worker thread pool, so the
    results of one turn are fully applied before the next turn's results.
    State reads and writes take a separate state lock so the interface can
    render while a model call is in flight.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from capabilities.executor import ExecutionResult, FunctionExecutor
from capabilities.interpreter import ResultInterpreter
from capabilities.parser import parse_response
from capabilities.registry import get_tool_definitions_json, with_context_defaults
from capabilities.transactions import TransactionRecorder, build_transaction_record
from conversation.models import FunctionCall, FunctionCallStatus, Message, MessageRole
from conversation.prompts import WELCOME_MESSAGE, build_conversation_prompt
from conversation.registry import FunctionCallRegistry
from conversation.topics import DEFAULT_TOPIC, TopicContext
from core.logger import log_info, log_warning, log_error
from llm.router import LLMRouter, is_valid_completion

ERROR_PREFIX = "⚠ Error:"


@dataclass
class TurnResult:
    """
    What one turn, approval or retry added to the conversation.

    Attributes:
        messages: Messages appended, in order
        call: Function call created or acted on, if any
        execution: Executor outcome, if the call ran
    """
    messages: List[Message] = field(default_factory=list)
    call: Optional[FunctionCall] = None
    execution: Optional[ExecutionResult] = None

    @property
    def needs_approval(self) -> bool:
        return self.call is not None and self.call.status is FunctionCallStatus.PENDING


class ConversationSession:
    """
    Per-conversation state and orchestration.

    Owns its registry and message list; nothing is shared between
    sessions. Collaborators are passed in so sessions can be tested in
    isolation.
    """

    def __init__(
        self,
        router: Optional[LLMRouter],
        executor: FunctionExecutor,
        recorder: Optional[TransactionRecorder] = None,
        interpreter: Optional[ResultInterpreter] = None,
        topic: Optional[TopicContext] = None,
        wallet_address: str = "",
        chain_id: int = 1,
        native_symbol: str = "ETH",
        auto_approve_read_only: bool = True
    ):
        """
        Initialize the session.

        Args:
            router: Model gateway for conversation turns
            executor: Dispatches approved calls to the capability backend
            recorder: Receives transaction records (None disables recording)
            interpreter: Explains results (defaults to one using `router`)
            topic: Lesson topic
            wallet_address: Connected wallet, "" when none
            chain_id: Current chain id
            native_symbol: Native token symbol of the current chain
            auto_approve_read_only: Run read-only calls without asking
        """
        self.router = router
        self.executor = executor
        self.recorder = recorder
        self.interpreter = interpreter or ResultInterpreter(router, native_symbol=native_symbol)
        self.topic = topic or DEFAULT_TOPIC
        self.wallet_address = wallet_address
        self.chain_id = chain_id
        self.native_symbol = native_symbol
        self.registry = FunctionCallRegistry(auto_approve_read_only=auto_approve_read_only)

        self._messages: List[Message] = []
        self._generation = 0
        self._lock = threading.RLock()
        self._turn_lock = threading.RLock()
        self._worker = ThreadPoolExecutor(max_workers=1, thread_name_prefix="chain-tutor-turn")
        self._closed = False

        self._seed(WELCOME_MESSAGE)

    # =========================================================================
    # State access
    # =========================================================================

    def messages(self) -> List[Message]:
        with self._lock:
            return list(self._messages)

    def calls(self) -> List[FunctionCall]:
        return self.registry.calls()

    def pending_calls(self) -> List[FunctionCall]:
        return self.registry.pending()

    def get_call(self, call_id: str) -> Optional[FunctionCall]:
        return self.registry.get(call_id)

    def _append(self, message: Message, generation: int, added: List[Message]) -> bool:
        """Append unless a reset happened since the turn started."""
        with self._lock:
            if generation != self._generation:
                log_warning(f"Dropping {message.role.value} message from a turn that predates a reset")
                return False
            self._messages.append(message)
        added.append(message)
        return True

    def _seed(self, text: str) -> None:
        with self._lock:
            self._messages = [Message(role=MessageRole.ASSISTANT, content=text)]

    # =========================================================================
    # Reset and topic
    # =========================================================================

    def reset(self, greeting: Optional[str] = None) -> None:
        """Clear messages and function calls together, then greet again."""
        with self._lock:
            self._generation += 1
            self.registry.clear()
            self._seed(greeting or WELCOME_MESSAGE)
        log_info("Conversation reset", prefix="🔄")

    def set_topic(self, topic: TopicContext) -> None:
        """Switch lesson topic. Starts a fresh conversation about it."""
        with self._lock:
            self.topic = topic
            self.reset(greeting=f"Let's explore {topic.name}. {topic.description}")
        log_info(f"Topic set to {topic.name}", prefix="📚")

    # =========================================================================
    # Turns
    # =========================================================================

    def send_message(self, text: str) -> TurnResult:
        """
        Run one conversation turn.

        Args:
            text: The learner's message

        Returns:
            TurnResult describing what was appended
        """
        with self._turn_lock:
            added: List[Message] = []
            with self._lock:
                generation = self._generation
                topic = self.topic
                self._append(Message(role=MessageRole.USER, content=text), generation, added)
                history = [
                    m.to_dict() for m in self._messages
                    if m.role is not MessageRole.FUNCTION
                ]

            ok, reply = self._ask_model(history, topic)
            if not ok:
                self._append(Message(role=MessageRole.ASSISTANT, content=reply), generation, added)
                return TurnResult(messages=added)

            parsed = parse_response(reply)
            display = parsed.display_text.strip()
            if display:
                self._append(Message(role=MessageRole.ASSISTANT, content=display), generation, added)

            if not parsed.has_invocation():
                return TurnResult(messages=added)

            arguments = with_context_defaults(
                parsed.invocation.name,
                parsed.invocation.arguments,
                wallet_address=self.wallet_address,
                chain_id=self.chain_id
            )
            with self._lock:
                if generation != self._generation:
                    return TurnResult(messages=added)
                call = self.registry.enqueue(parsed.invocation.name, arguments)

            result = TurnResult(messages=added, call=call)
            if call.status is FunctionCallStatus.APPROVED:
                result.execution = self._run_call(call, generation, added)
            else:
                log_info(f"{call.name} ({call.id}) is waiting for approval", prefix="⏳")
            return result

    def _ask_model(self, history: list, topic: TopicContext) -> Tuple[bool, str]:
        """Get the model's reply as (True, text), or (False, error message)."""
        if self.router is None:
            return False, f"{ERROR_PREFIX} I'm sorry, no conversation model is configured."
        try:
            response = self.router.chat(
                messages=history,
                system_prompt=build_conversation_prompt(topic),
                tools_json=get_tool_definitions_json()
            )
        except Exception as e:
            log_error(f"Conversation model raised: {e}")
            return False, f"{ERROR_PREFIX} I'm sorry, I encountered an error: {e}"

        if not response.success:
            return False, f"{ERROR_PREFIX} I'm sorry, I encountered an error: {response.error or response.error_type}"
        if not is_valid_completion(response.text):
            log_warning(f"Invalid completion from {response.provider.value}: {response.text[:80]!r}")
            return False, f"{ERROR_PREFIX} I'm sorry, the model did not return a valid response. Please try again."
        return True, response.text

    # =========================================================================
    # Approval, rejection, retry
    # =========================================================================

    def approve(self, call_id: str) -> TurnResult:
        """
        Approve a pending call and execute it.

        Returns:
            TurnResult; `execution` is None when the approval was refused
        """
        with self._turn_lock:
            added: List[Message] = []
            with self._lock:
                generation = self._generation
                approved = self.registry.approve(call_id)
                call = self.registry.get(call_id)
            if not approved:
                return TurnResult(messages=added, call=call)
            log_info(f"Approved {call.name} ({call_id})", prefix="👍")
            execution = self._run_call(call, generation, added)
            return TurnResult(messages=added, call=call, execution=execution)

    def reject(self, call_id: str) -> bool:
        """Reject a pending call. Returns False if it was not pending."""
        with self._lock:
            rejected = self.registry.reject(call_id)
        if rejected:
            log_info(f"Rejected function call {call_id}", prefix="👎")
        return rejected

    def retry(self, call_id: str) -> TurnResult:
        """Execute an approved call again after a failure."""
        with self._turn_lock:
            added: List[Message] = []
            with self._lock:
                generation = self._generation
                call = self.registry.get(call_id)
            if call is None or call.status is not FunctionCallStatus.APPROVED:
                log_warning(f"Only approved, unexecuted calls can be retried: {call_id}")
                return TurnResult(messages=added, call=call)
            execution = self._run_call(call, generation, added)
            return TurnResult(messages=added, call=call, execution=execution)

    # =========================================================================
    # Execution
    # =========================================================================

    def _run_call(self, call: FunctionCall, generation: int, added: List[Message]) -> ExecutionResult:
        """Execute an approved call and append its outcome."""
        execution = self.executor.execute(call)
        topic = self.topic

        if not execution.success:
            text = self.interpreter.explain_failure(call, execution.error, topic)
            self._append(Message(role=MessageRole.ASSISTANT, content=text), generation, added)
            return execution

        with self._lock:
            if generation != self._generation:
                log_warning(f"Result of {call.name} arrived after a reset and was discarded")
                return execution
            self.registry.set_status(call.id, FunctionCallStatus.EXECUTED, execution.data)
            content = self.interpreter.serialize_result(call, execution.data)
            self._append(
                Message(role=MessageRole.FUNCTION, content=content, name=call.name, call_id=call.id),
                generation, added
            )

        record = build_transaction_record(
            call, execution.data,
            from_address=self.wallet_address,
            chain_id=self.chain_id,
            native_symbol=self.native_symbol
        )
        if record is not None and self.recorder is not None:
            try:
                self.recorder.append(record)
            except Exception as e:
                log_error(f"Transaction recorder failed for {record.hash}: {e}")

        interpretation = self.interpreter.interpret(call, topic)
        self._append(Message(role=MessageRole.ASSISTANT, content=interpretation.text), generation, added)
        return execution

    # =========================================================================
    # Background submission
    # =========================================================================

    def _submit(self, fn, *args) -> "Future[TurnResult]":
        if self._closed:
            raise RuntimeError("Session is closed")
        return self._worker.submit(fn, *args)

    def submit_message(self, text: str) -> "Future[TurnResult]":
        """Queue a turn on the session worker."""
        return self._submit(self.send_message, text)

    def submit_approval(self, call_id: str) -> "Future[TurnResult]":
        """Queue an approval (and the execution it triggers) on the session worker."""
        return self._submit(self.approve, call_id)

    def submit_retry(self, call_id: str) -> "Future[TurnResult]":
        return self._submit(self.retry, call_id)

    def close(self) -> None:
        """Finish queued work and stop the worker."""
        if not self._closed:
            self._closed = True
            self._worker.shutdown(wait=True)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
