#!/usr/bin/env python3
"""
Chain Tutor - Main Entry Point
Conversational Web3 learning assistant with approval-gated blockchain functions

Usage:
    python main.py                         # Chat with the default provider
    python main.py --provider anthropic    # Use a hosted model
    python main.py --topic dex             # Start on a lesson topic
    python main.py --wallet 0xabc... --chain-id 56
"""

import sys
import signal
import argparse
from pathlib import Path
from typing import Optional

# Ensure we can import from project root
sys.path.insert(0, str(Path(__file__).parent))

import config
from capabilities.executor import FunctionExecutor
from capabilities.interpreter import ResultInterpreter
from capabilities.registry import chain_name
from capabilities.sandbox import SandboxBackend
from capabilities.transactions import InMemoryTransactionRecorder
from conversation.session import ConversationSession
from conversation.topics import DEFAULT_TOPIC, get_topic
from core.logger import (
    setup_logging,
    log_startup_banner,
    log_section,
    log_subsection,
    log_success,
    log_warning,
    log_error,
    log_ready
)
from interface.cli import ChatCLI
from llm.router import LLMProvider, get_llm_router, init_llm_router


def signal_handler(signum, frame):
    """Handle termination signals."""
    print()
    log_warning("Shutdown signal received...")
    raise KeyboardInterrupt


def print_configuration(session: ConversationSession) -> None:
    """Print configuration summary."""
    log_section("Configuration", "📡")
    log_subsection(f"Diagnostic Log: {config.DIAGNOSTIC_LOG_PATH}")
    log_subsection(f"Topic: {session.topic.name}")
    log_subsection(f"Chain: {chain_name(session.chain_id)} ({session.chain_id}), native {session.native_symbol}")
    wallet = session.wallet_address
    log_subsection(f"Wallet: {wallet[:6] + '...' + wallet[-4:] if len(wallet) > 10 else wallet or 'not connected'}")
    log_subsection("Capability Backend: sandbox (simulated, no real transactions)")

    log_section("Function Calls", "🔧")
    if session.registry.auto_approve_read_only:
        log_subsection("Read-only functions: AUTO-APPROVED")
    else:
        log_subsection("Read-only functions: REQUIRE APPROVAL")
    log_subsection("Mutating functions: REQUIRE APPROVAL")


def check_llm_providers() -> None:
    """Check and display LLM provider status."""
    log_section("LLM Routing", "🤖")

    router = get_llm_router()
    status = router.check_providers()

    primary = router.primary_provider
    mark = "✅ available" if status.get(primary) else "❌ unavailable"
    log_subsection(f"Primary ({primary.value}): {mark}")

    fallback = router.fallback_provider
    if fallback is not None:
        mark = "✅ available" if status.get(fallback) else "❌ unavailable"
        log_subsection(f"Fallback ({fallback.value}): {mark}")
    else:
        log_subsection("Fallback: DISABLED")


def build_session(
    provider: str,
    topic_id: Optional[str],
    wallet: str,
    chain_id: int
) -> tuple:
    """
    Wire up the router, capability backend and conversation session.

    Returns:
        Tuple of (session, recorder)
    """
    router = init_llm_router(
        primary_provider=provider,
        fallback_provider=config.LLM_FALLBACK_PROVIDER
    )

    topic = get_topic(topic_id) if topic_id else DEFAULT_TOPIC
    if topic is None:
        log_warning(f"Unknown topic '{topic_id}', using {DEFAULT_TOPIC.name}")
        topic = DEFAULT_TOPIC

    recorder = InMemoryTransactionRecorder()
    backend = SandboxBackend(native_symbol=config.NATIVE_TOKEN_SYMBOL)
    session = ConversationSession(
        router=router,
        executor=FunctionExecutor(backend),
        recorder=recorder,
        interpreter=ResultInterpreter(router, native_symbol=config.NATIVE_TOKEN_SYMBOL),
        topic=topic,
        wallet_address=wallet,
        chain_id=chain_id,
        native_symbol=config.NATIVE_TOKEN_SYMBOL,
        auto_approve_read_only=config.AUTO_APPROVE_READ_ONLY
    )
    return session, recorder


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Chain Tutor - Web3 Learning Assistant",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        "--provider", "-p",
        choices=[p.value for p in LLMProvider],
        default=config.LLM_PRIMARY_PROVIDER,
        help="Model provider for conversation turns"
    )
    parser.add_argument(
        "--topic", "-t",
        default=None,
        help="Lesson topic id to start with (see /topics)"
    )
    parser.add_argument(
        "--wallet", "-w",
        default=config.WALLET_ADDRESS,
        help="Connected wallet address used as the default sender"
    )
    parser.add_argument(
        "--chain-id",
        type=int,
        default=config.CHAIN_ID,
        help="Chain id for function calls and transaction records"
    )
    args = parser.parse_args()

    signal.signal(signal.SIGTERM, signal_handler)

    config.LOGS_DIR.mkdir(parents=True, exist_ok=True)
    setup_logging(
        log_file_path=config.DIAGNOSTIC_LOG_PATH,
        level=config.LOG_LEVEL,
        log_to_file=config.LOG_TO_FILE,
        log_to_console=config.LOG_TO_CONSOLE
    )
    log_startup_banner(config.VERSION, config.PROJECT_NAME)

    session = None
    try:
        session, recorder = build_session(args.provider, args.topic, args.wallet, args.chain_id)
        print_configuration(session)
        check_llm_providers()

        log_ready(config.PROJECT_NAME)

        # Start CLI (blocks until exit)
        ChatCLI(session, recorder=recorder).start()

        log_success(f"{config.PROJECT_NAME} shutdown complete")
        return 0

    except KeyboardInterrupt:
        log_warning("Interrupted")
        return 130

    except Exception as e:
        log_error(f"Fatal error: {e}")
        import traceback
        traceback.print_exc()
        return 1

    finally:
        if session is not None:
            session.close()


if __name__ == "__main__":
    sys.exit(main())
