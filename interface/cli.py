"""
Chain Tutor - CLI Interface
Rich terminal interface for the tutoring conversation
"""

import json
from typing import Callable, Dict, Optional

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from capabilities.registry import classify
from capabilities.transactions import InMemoryTransactionRecorder
from conversation.models import FunctionCall, FunctionCallStatus, Message, MessageRole
from conversation.session import ConversationSession, TurnResult
from conversation.topics import get_topic, list_topics
from core.logger import log_error, get_timestamp
from llm.router import LLMProvider

STATUS_STYLES = {
    FunctionCallStatus.PENDING: "yellow",
    FunctionCallStatus.APPROVED: "cyan",
    FunctionCallStatus.REJECTED: "red",
    FunctionCallStatus.EXECUTED: "green",
}


class ChatCLI:
    """
    Rich CLI interface for a conversation session.

    Provides:
    - Formatted input/output
    - Approval prompts for mutating function calls
    - Slash commands
    """

    def __init__(
        self,
        session: ConversationSession,
        recorder: Optional[InMemoryTransactionRecorder] = None,
        console: Optional[Console] = None
    ):
        self.session = session
        self.recorder = recorder
        self.console = console or Console()
        self._running = False
        self._commands: Dict[str, Callable[[str], None]] = {}
        self._setup_commands()

    def _setup_commands(self) -> None:
        """Register slash commands."""
        self._commands = {
            "/help": self._cmd_help,
            "/quit": self._cmd_quit,
            "/exit": self._cmd_quit,
            "/calls": self._cmd_calls,
            "/approve": self._cmd_approve,
            "/reject": self._cmd_reject,
            "/retry": self._cmd_retry,
            "/tx": self._cmd_transactions,
            "/topic": self._cmd_topic,
            "/topics": self._cmd_topics,
            "/provider": self._cmd_provider,
            "/reset": self._cmd_reset,
        }

    def start(self) -> None:
        """Start the CLI chat loop."""
        self._running = True

        self.console.print()
        self.console.print(
            "[bold cyan]💬 Entering chat mode. Type '/help' for commands.[/bold cyan]"
        )
        self.console.print(f"[dim]Topic: {self.session.topic.name}[/dim]")
        self.console.print()
        for message in self.session.messages():
            self._display_message(message)

        while self._running:
            try:
                user_input = Prompt.ask("[bold green]You[/bold green]")

                if not user_input.strip():
                    continue

                if user_input.startswith("/"):
                    self._handle_command(user_input)
                    continue

                with self.console.status("[bold blue]Thinking...[/bold blue]", spinner="dots"):
                    result = self.session.submit_message(user_input).result()
                self._display_turn(result)

            except KeyboardInterrupt:
                self.console.print("\n[dim]Use /quit to exit[/dim]")
            except EOFError:
                self._cmd_quit("")
            except Exception as e:
                log_error(f"CLI error: {e}")
                self.console.print(f"[bold red]Error:[/bold red] {e}")

    def stop(self) -> None:
        """Stop the CLI loop."""
        self._running = False

    # =========================================================================
    # Display
    # =========================================================================

    def _display_turn(self, result: TurnResult) -> None:
        for message in result.messages:
            self._display_message(message)
        if result.needs_approval:
            self._display_approval_request(result.call)

    def _display_message(self, message: Message) -> None:
        if message.role is MessageRole.USER:
            return

        if message.role is MessageRole.FUNCTION:
            try:
                body = json.dumps(json.loads(message.content), indent=2)
            except ValueError:
                body = message.content
            self.console.print(Panel(
                body,
                title=f"[bold magenta]🔧 {message.name}[/bold magenta] [dim]result[/dim]",
                title_align="left",
                border_style="magenta",
                padding=(0, 1)
            ))
            return

        is_error = message.content.startswith("⚠")
        self.console.print(Panel(
            Markdown(message.content),
            title=f"[bold blue]Tutor[/bold blue] [dim]{get_timestamp()}[/dim]",
            title_align="left",
            border_style="red" if is_error else "blue",
            padding=(0, 1)
        ))
        self.console.print()

    def _display_approval_request(self, call: FunctionCall) -> None:
        """Show a pending call and how to approve or reject it."""
        lines = [f"[bold]{call.name}[/bold] [dim]({classify(call.name).value})[/dim]", ""]
        for key, value in call.arguments.items():
            lines.append(f"  [cyan]{key}[/cyan]: {value}")
        lines.append("")
        lines.append(f"[green]/approve {call.id}[/green]  or  [red]/reject {call.id}[/red]")
        self.console.print(Panel(
            "\n".join(lines),
            title="[bold yellow]Approval Needed[/bold yellow]",
            title_align="left",
            border_style="yellow",
            padding=(1, 2)
        ))
        self.console.print()

    # =========================================================================
    # Commands
    # =========================================================================

    def _handle_command(self, input_str: str) -> None:
        """Handle a slash command."""
        parts = input_str.split(maxsplit=1)
        cmd = parts[0].lower()
        args = parts[1].strip() if len(parts) > 1 else ""

        if cmd in self._commands:
            self._commands[cmd](args)
        else:
            self.console.print(f"[yellow]Unknown command: {cmd}[/yellow]")
            self.console.print("[dim]Type /help for available commands[/dim]")

    def _cmd_help(self, args: str) -> None:
        """Show help."""
        table = Table(title="Available Commands", show_header=True)
        table.add_column("Command", style="cyan")
        table.add_column("Description")

        table.add_row("/help", "Show this help message")
        table.add_row("/quit, /exit", "Exit the program")
        table.add_row("/calls", "List function calls and their status")
        table.add_row("/approve <id>", "Approve and run a pending function call")
        table.add_row("/reject <id>", "Reject a pending function call")
        table.add_row("/retry <id>", "Run an approved call again after a failure")
        table.add_row("/tx", "Show recorded transactions")
        table.add_row("/topics", "List lesson topics")
        table.add_row("/topic <id>", "Switch lesson topic (starts a new conversation)")
        table.add_row("/provider <name>", "Switch model provider (ollama/replicate/anthropic)")
        table.add_row("/reset", "Clear the conversation and function calls")

        self.console.print(table)

    def _cmd_quit(self, args: str) -> None:
        """Quit the program."""
        pending = self.session.pending_calls()
        if pending:
            self.console.print(f"[dim]{len(pending)} function call(s) left pending[/dim]")
        self.console.print("[bold]Goodbye![/bold]")
        self._running = False

    def _cmd_calls(self, args: str) -> None:
        """List function calls."""
        calls = self.session.calls()
        if not calls:
            self.console.print("[dim]No function calls yet[/dim]")
            return

        table = Table(title="Function Calls", show_header=True)
        table.add_column("ID", style="dim")
        table.add_column("Function", style="cyan")
        table.add_column("Arguments")
        table.add_column("Status")
        table.add_column("Time", style="dim")

        for call in calls:
            style = STATUS_STYLES[call.status]
            table.add_row(
                call.id,
                call.name,
                json.dumps(call.arguments),
                f"[{style}]{call.status.value}[/{style}]",
                call.created_at.strftime("%H:%M:%S")
            )
        self.console.print(table)

    def _resolve_call_id(self, args: str, status: FunctionCallStatus) -> Optional[str]:
        """Use the given id, or the only call in `status` when none is given."""
        if args:
            return args.split()[0]
        candidates = [c for c in self.session.calls() if c.status is status]
        if len(candidates) == 1:
            return candidates[0].id
        if not candidates:
            self.console.print(f"[yellow]No {status.value} function calls[/yellow]")
        else:
            self.console.print("[yellow]Several calls match, give an id (see /calls)[/yellow]")
        return None

    def _cmd_approve(self, args: str) -> None:
        """Approve a pending call."""
        call_id = self._resolve_call_id(args, FunctionCallStatus.PENDING)
        if not call_id:
            return
        with self.console.status("[bold blue]Executing...[/bold blue]", spinner="dots"):
            result = self.session.submit_approval(call_id).result()
        if result.execution is None:
            self.console.print(f"[yellow]Could not approve {call_id} (not pending)[/yellow]")
            return
        self._display_turn(result)

    def _cmd_reject(self, args: str) -> None:
        """Reject a pending call."""
        call_id = self._resolve_call_id(args, FunctionCallStatus.PENDING)
        if not call_id:
            return
        if self.session.reject(call_id):
            self.console.print(f"[green]Rejected {call_id}[/green]")
        else:
            self.console.print(f"[yellow]Could not reject {call_id} (not pending)[/yellow]")

    def _cmd_retry(self, args: str) -> None:
        """Retry a failed approved call."""
        call_id = self._resolve_call_id(args, FunctionCallStatus.APPROVED)
        if not call_id:
            return
        with self.console.status("[bold blue]Executing...[/bold blue]", spinner="dots"):
            result = self.session.submit_retry(call_id).result()
        if result.execution is None:
            self.console.print(f"[yellow]Nothing to retry for {call_id}[/yellow]")
            return
        self._display_turn(result)

    def _cmd_transactions(self, args: str) -> None:
        """Show recorded transactions."""
        records = self.recorder.records() if self.recorder else []
        if not records:
            self.console.print("[dim]No transactions recorded[/dim]")
            return

        table = Table(title="Transactions", show_header=True)
        table.add_column("Hash", style="cyan", max_width=20)
        table.add_column("Description")
        table.add_column("To", style="dim", max_width=20)
        table.add_column("Chain")
        table.add_column("Status", style="green")

        for record in records:
            table.add_row(record.hash, record.description, record.to or "-", record.chainId, record.status)
        self.console.print(table)

    def _cmd_topics(self, args: str) -> None:
        """List lesson topics."""
        table = Table(title="Lesson Topics", show_header=True)
        table.add_column("ID", style="cyan")
        table.add_column("Topic")
        table.add_column("Try asking", style="dim")

        for topic in list_topics():
            marker = " [green]●[/green]" if topic.id == self.session.topic.id else ""
            sample = topic.suggested_questions[0] if topic.suggested_questions else ""
            table.add_row(topic.id, f"{topic.name}{marker}", sample)
        self.console.print(table)

    def _cmd_topic(self, args: str) -> None:
        """Switch topic."""
        if not args:
            self.console.print(f"[dim]Current topic: {self.session.topic.name}[/dim]")
            return
        topic = get_topic(args)
        if topic is None:
            self.console.print(f"[yellow]Unknown topic: {args}[/yellow] [dim](see /topics)[/dim]")
            return
        self.session.set_topic(topic)
        for message in self.session.messages():
            self._display_message(message)

    def _cmd_provider(self, args: str) -> None:
        """Show or switch the model provider."""
        router = self.session.router
        if router is None:
            self.console.print("[yellow]No model router configured[/yellow]")
            return
        if not args:
            status = router.check_providers()
            for provider, available in status.items():
                mark = "[green]✓[/green]" if available else "[red]✗[/red]"
                current = " [dim](current)[/dim]" if provider == router.primary_provider else ""
                self.console.print(f"  {mark} {provider.value}{current}")
            return
        try:
            provider = LLMProvider(args.lower())
        except ValueError:
            names = ", ".join(p.value for p in LLMProvider)
            self.console.print(f"[yellow]Unknown provider: {args}[/yellow] [dim]({names})[/dim]")
            return
        router.set_primary_provider(provider)
        self.console.print(f"[green]Provider set to {provider.value}[/green]")

    def _cmd_reset(self, args: str) -> None:
        """Reset the conversation."""
        self.session.reset()
        self.console.print("[green]Conversation reset[/green]")
        for message in self.session.messages():
            self._display_message(message)
