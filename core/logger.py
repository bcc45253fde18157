"""
Chain Tutor - Logging System
Timestamped rich console output mirrored to a diagnostic log file
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from rich.console import Console
from rich.markup import escape
from rich.theme import Theme

THEME = Theme({
    "info": "cyan",
    "warning": "yellow",
    "error": "bold red",
    "success": "bold green",
    "timestamp": "dim white",
    "header": "bold magenta",
    "detail": "dim cyan",
})

LEVEL_PREFIXES = {
    "success": "✅",
    "warning": "⚠️",
    "error": "❌",
}

SEPARATOR = "=" * 60

# Shared console, also used by the chat interface
console = Console(theme=THEME)

_logger: Optional[logging.Logger] = None
_console_enabled: bool = True


def setup_logging(
    log_file_path: Path,
    level: str = "INFO",
    log_to_file: bool = True,
    log_to_console: bool = True
) -> logging.Logger:
    """
    Initialize the logging system.

    Args:
        log_file_path: Path to the diagnostic log file
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_to_file: Whether to write logs to file
        log_to_console: Whether to echo log lines on the console

    Returns:
        Configured logger instance
    """
    global _logger, _console_enabled

    _console_enabled = log_to_console

    _logger = logging.getLogger("chain_tutor")
    _logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    _logger.handlers.clear()
    _logger.propagate = False

    if log_to_file:
        log_file_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file_path, encoding="utf-8")
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(
            "[%(asctime)s] %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))
        _logger.addHandler(handler)

    return _logger


def get_timestamp() -> str:
    """Get formatted timestamp for console output."""
    return datetime.now().strftime("%H:%M:%S")


def _stamp() -> str:
    return f"[timestamp][{get_timestamp()}][/timestamp]"


def _mirror(lines: Iterable[str], level: int = logging.INFO) -> None:
    """Write plain lines to the diagnostic log, if one is configured."""
    if _logger:
        for line in lines:
            _logger.log(level, line)


def log(message: str, level: str = "info", prefix: str = "") -> None:
    """
    Log a message to both console and file.

    Args:
        message: The message to log
        level: info, warning, error or success
        prefix: Optional emoji shown before the message
    """
    prefix = prefix or LEVEL_PREFIXES.get(level, "")
    prefix_str = f"{prefix} " if prefix else ""

    if _console_enabled:
        style = level if level in ("info", "warning", "error", "success") else "info"
        console.print(
            f"{_stamp()} {prefix_str}{escape(message)}",
            style=style,
            highlight=False
        )

    # "success" is not a stdlib level
    _mirror([f"{prefix_str}{message}"], getattr(logging, level.upper(), logging.INFO))


def log_info(message: str, prefix: str = "") -> None:
    log(message, "info", prefix)


def log_success(message: str, prefix: str = "") -> None:
    log(message, "success", prefix)


def log_warning(message: str, prefix: str = "") -> None:
    log(message, "warning", prefix)


def log_error(message: str, prefix: str = "") -> None:
    log(message, "error", prefix)


def log_startup_banner(version: str, project_name: str) -> None:
    """Print the startup banner."""
    title = f"{project_name} - v{version} - DeFi Learning Assistant"
    console.print()
    for line in (SEPARATOR, f"⛓️  {title}", SEPARATOR):
        console.print(f"{_stamp()} [header]{line}[/header]")
    _mirror([SEPARATOR, title, SEPARATOR])


def log_section(title: str, emoji: str = "📋") -> None:
    """Print a startup section title."""
    console.print(f"\n{_stamp()} [header]{emoji} {title}:[/header]")
    _mirror([f"{title}:"])


def log_subsection(message: str, emoji: str = "", indent: int = 1) -> None:
    """Print one indented detail line under a section."""
    line = "   " * indent + (f"{emoji} " if emoji else "") + message
    console.print(f"{_stamp()} [detail]{escape(line)}[/detail]")
    _mirror([line])


def log_ready(project_name: str) -> None:
    """Print the ready message."""
    ready = f"{project_name.upper()} READY"
    console.print(f"\n[header]{SEPARATOR}[/header]")
    console.print(f"{_stamp()} [success]✅ {ready}[/success]")
    console.print(f"[header]{SEPARATOR}[/header]\n")
    _mirror([SEPARATOR, ready, SEPARATOR])
