"""
Enhanced logging with rich formatting and colorlog.
Console output is correlated by inspection session (order number).
"""

import logging
import re
import sys
import uuid
from pathlib import Path
from typing import Optional

import colorlog
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn

from utils.config import config, LOG_DIR

# Global console for rich output
console = Console()

# Request ID context for correlation
_request_context = {}


def get_request_id() -> str:
    """Get or create request ID for current context."""
    if "request_id" not in _request_context:
        _request_context["request_id"] = str(uuid.uuid4())[:8]
    return _request_context["request_id"]


def set_request_id(request_id: str):
    """Set request ID for current context (the order number of the open inspection)."""
    _request_context["request_id"] = request_id


def clear_request_id():
    """Clear request ID from context."""
    _request_context.clear()


class SensitiveDataFilter(logging.Filter):
    """Filter to mask sensitive data like API keys in log messages."""

    # Patterns to mask (key prefix -> replacement)
    SENSITIVE_PATTERNS = [
        ("SG.", "SG.***MASKED***"),
        ("Bearer ", "Bearer ***MASKED***"),
        ("client_secret=", "client_secret=***MASKED***"),
        ("access_token=", "access_token=***MASKED***"),
        ("api_key=", "api_key=***MASKED***"),
        ("API_KEY=", "API_KEY=***MASKED***"),
    ]

    def filter(self, record):
        if hasattr(record, 'msg') and record.msg:
            msg = str(record.msg)
            for pattern, replacement in self.SENSITIVE_PATTERNS:
                if pattern in msg:
                    regex = rf"({re.escape(pattern)})([a-zA-Z0-9_.-]+)"
                    msg = re.sub(regex, replacement, msg)
            record.msg = msg
        return True


class ContextFilter(logging.Filter):
    """Add request ID and component name to log records."""

    def __init__(self, component: str = "SYSTEM"):
        super().__init__()
        self.component = component

    def filter(self, record):
        record.request_id = get_request_id()
        record.component = self.component
        return True


def setup_logger(
    name: str,
    level: str = "INFO",
    log_file: Optional[Path] = None,
    component: str = None
) -> logging.Logger:
    """
    Setup logger with colorlog formatting.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for logging
        component: Component name for contextualized logging

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))
    logger.handlers.clear()
    logger.filters.clear()
    logger.addFilter(SensitiveDataFilter())

    # Component name (use module name if not specified)
    comp = component or name.split(".")[-1].upper()

    console_handler = colorlog.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level.upper()))

    console_formatter = colorlog.ColoredFormatter(
        fmt=(
            "%(log_color)s[%(asctime)s.%(msecs)03d] "
            "%(levelname)-8s "
            "%(white)s[%(request_id)s] "
            "%(cyan)s[%(component)s] "
            "%(message_log_color)s%(message)s"
        ),
        datefmt="%Y-%m-%d %H:%M:%S",
        log_colors={
            "DEBUG": "blue",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "red,bg_white",
        },
        secondary_log_colors={
            "message": {
                "DEBUG": "white",
                "INFO": "white",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "red,bg_white",
            }
        },
        reset=True,
        style="%"
    )

    console_handler.setFormatter(console_formatter)
    console_handler.addFilter(ContextFilter(comp))
    logger.addHandler(console_handler)

    if log_file is None and config.log_to_file:
        log_file = LOG_DIR / "inspection.log"

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)

        # JSON lines for the file sink
        file_formatter = logging.Formatter(
            fmt=(
                '{"timestamp":"%(asctime)s.%(msecs)03d",'
                '"level":"%(levelname)s",'
                '"request_id":"%(request_id)s",'
                '"component":"%(component)s",'
                '"logger":"%(name)s",'
                '"message":"%(message)s"}'
            ),
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        file_handler.setFormatter(file_formatter)
        file_handler.addFilter(ContextFilter(comp))
        logger.addHandler(file_handler)

    return logger


def print_banner():
    """Print application startup banner."""
    banner = """
╔══════════════════════════════════════════════════════════╗
║                                                          ║
║   🚗  DELIVERY INSPECTION SYSTEM  v1.0.0                 ║
║   Two-Phase Pre-Delivery Inspection & Reporting          ║
║                                                          ║
╚══════════════════════════════════════════════════════════╝
"""
    console.print(banner, style="bold cyan")


def print_health_check_table(checks: dict):
    """
    Print health check results in a formatted table.

    Args:
        checks: Dict of check_name -> (status: bool, details: str)
    """
    table = Table(title="🏥 System Health Checks", show_header=True, header_style="bold magenta")
    table.add_column("Component", style="cyan", width=30)
    table.add_column("Status", width=12)
    table.add_column("Details", style="dim")

    for component, (status, details) in checks.items():
        status_icon = "✓ READY" if status else "✗ FAILED"
        status_style = "green" if status else "red"
        table.add_row(
            component,
            f"[{status_style}]{status_icon}[/{status_style}]",
            details
        )

    console.print(table)


def print_summary_panel(title: str, content: dict, style: str = "green"):
    """
    Print summary information in a panel.

    Args:
        title: Panel title
        content: Dict of key-value pairs to display
        style: Panel border style (green, yellow, red, cyan)
    """
    text = "\n".join([f"[bold]{k}:[/bold] {v}" for k, v in content.items()])
    panel = Panel(text, title=title, border_style=style, expand=False)
    console.print(panel)


def print_phase_summary(
    order_number: str,
    phase: str,
    total: int,
    completed: int,
    failed: int,
):
    """
    Print a signed-off phase summary.

    Args:
        order_number: Order the inspection belongs to
        phase: Phase that was completed (on_delivery, test_drive)
        total: Items in the phase
        completed: Items with a pass/fail decision
        failed: Items marked failed
    """
    style = "red" if failed else "green"
    headline = f"⚠ {failed} ISSUE(S) REPORTED" if failed else "✓ ALL ITEMS PASSED"

    content = f"""[bold {style}]{headline}[/bold {style}]

[bold]Order:[/bold] {order_number}
[bold]Phase:[/bold] {phase.replace('_', ' ').title()}
[bold]Checked:[/bold] {completed}/{total}"""

    panel = Panel(
        content,
        title="Phase Signed Off",
        border_style=style,
        expand=False
    )
    console.print(panel)


def print_error(error_type: str, message: str, details: Optional[str] = None):
    """
    Print error message in formatted panel.

    Args:
        error_type: Type of error
        message: Error message
        details: Optional detailed error information
    """
    content = f"[bold red]{error_type}[/bold red]\n\n{message}"
    if details:
        content += f"\n\n[dim]{details}[/dim]"

    panel = Panel(
        content,
        title="❌ Error",
        border_style="red",
        expand=False
    )
    console.print(panel)


def create_progress_bar(description: str = "Processing"):
    """
    Create a rich progress bar for long operations.

    Args:
        description: Progress bar description

    Returns:
        Rich Progress instance
    """
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True
    )
