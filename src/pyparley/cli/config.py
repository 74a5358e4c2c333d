"""CLI configuration constants and console logging.

Centralizes log levels and the debug callback that routes component
logs to a Rich console.
"""

from datetime import datetime

from rich.console import Console
from rich.markup import escape


class LogLevel:
    """Log level constants with numeric values for comparison.

    Standard logging hierarchy: DEBUG < INFO < WARNING < ERROR
    Lower numeric value = more verbose (shows more messages).
    """

    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40

    _names = {
        DEBUG: "DEBUG",
        INFO: "INFO",
        WARNING: "WARNING",
        ERROR: "ERROR",
    }

    _from_string = {
        "debug": DEBUG,
        "info": INFO,
        "warning": WARNING,
        "error": ERROR,
    }

    @classmethod
    def name(cls, level: int) -> str:
        """Get the name for a log level."""
        return cls._names.get(level, "UNKNOWN")

    @classmethod
    def from_string(cls, level_str: str) -> int:
        """Convert string to log level. Returns WARNING if invalid."""
        return cls._from_string.get(level_str.lower(), cls.WARNING)


LOG_TIMESTAMP_FORMAT = "%H:%M:%S"
LOG_MAX_MESSAGE_LENGTH = 500  # Characters before truncating log messages

_LEVEL_COLORS = {
    LogLevel.DEBUG: "dim white",
    LogLevel.INFO: "cyan",
    LogLevel.WARNING: "yellow",
    LogLevel.ERROR: "red",
}

_COMPONENT_COLORS = {
    "Chat": "green",
    "LLM": "magenta",
    "Scheduler": "blue",
    "CLI": "cyan",
}


class ConsoleLog:
    """Debug callback that prints component logs at or above a threshold.

    Pass an instance wherever a ``set_debug_callback`` is offered.
    """

    def __init__(self, console: Console, level: int = LogLevel.WARNING) -> None:
        self._console = console
        self._level = level

    @property
    def level(self) -> int:
        return self._level

    def __call__(self, level: str, component: str, message: str) -> None:
        numeric = LogLevel.from_string(level)
        if numeric < self._level:
            return

        if len(message) > LOG_MAX_MESSAGE_LENGTH:
            message = message[:LOG_MAX_MESSAGE_LENGTH] + "..."

        timestamp = datetime.now().strftime(LOG_TIMESTAMP_FORMAT)
        level_color = _LEVEL_COLORS.get(numeric, "white")
        comp_color = _COMPONENT_COLORS.get(component, "white")

        self._console.print(
            f"[dim]{timestamp}[/] "
            f"[{level_color}]{LogLevel.name(numeric):<5}[/] "
            f"[{comp_color}]\\[{component}][/] {escape(message)}"
        )
