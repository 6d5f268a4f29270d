import sys
import threading
from datetime import datetime
from enum import IntEnum
from typing import Optional, TextIO

import colorama
from colorama import Fore, Style

colorama.init()


class LogType(IntEnum):
    SUCCESS = 0
    WARNING = 1
    ERROR = 2
    INFORMATION = 3
    ATTENTION = 4
    DIAGNOSTIC = 5


class LogLevel(IntEnum):
    NONE = -1
    MINIMAL = 2
    INFORMATIVE = 4
    ALL = 5

    @classmethod
    def parse(cls, value: str) -> "LogLevel":
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown log level '{value}'") from None


COLORS = {
    LogType.SUCCESS: Fore.GREEN,
    LogType.WARNING: Fore.YELLOW,
    LogType.ERROR: Fore.RED + Style.BRIGHT,
    LogType.INFORMATION: Fore.WHITE,
    LogType.ATTENTION: Fore.CYAN,
    LogType.DIAGNOSTIC: Style.DIM + Fore.WHITE,
}


class Logger:
    """Coloured console writer shared by every engine of an environment.

    Writes are serialized with a lock of their own, as messages arrive from
    watchdog threads and timer callbacks as well as from the running cascade.
    """

    def __init__(self, level: LogLevel = LogLevel.INFORMATIVE, stream: Optional[TextIO] = None):
        self.level = level
        self.stream = stream
        self._lock = threading.Lock()

    def log(self, title: str, message: str = "", type: LogType = LogType.DIAGNOSTIC,
            new_line: bool = True, faded: bool = False, no_time: bool = False) -> None:
        with self._lock:
            if self.level < type:
                return

            stream = self.stream or sys.stdout
            color = COLORS[LogType.DIAGNOSTIC if faded else type]
            prefix = "" if no_time else f"[{datetime.now().strftime('%H:%M:%S')}] "

            # A detail message always starts on its own line
            end = "\n" if new_line or message else ""
            stream.write(f"{color}{prefix}{title}{Style.RESET_ALL}{end}")
            if message:
                end = "\n" if new_line else ""
                stream.write(f"{color}{message}{Style.RESET_ALL}{end}")
            stream.flush()

    def information(self, title: str, message: str = "", **kwargs) -> None:
        self.log(title, message, type=LogType.INFORMATION, **kwargs)

    def success(self, title: str, message: str = "", **kwargs) -> None:
        self.log(title, message, type=LogType.SUCCESS, **kwargs)

    def warning(self, title: str, message: str = "", **kwargs) -> None:
        self.log(title, message, type=LogType.WARNING, **kwargs)

    def error(self, title: str, message: str = "", **kwargs) -> None:
        self.log(title, message, type=LogType.ERROR, **kwargs)

    def log_tabbed(self, name: str, value: str, tab_level: int, type: LogType = LogType.DIAGNOSTIC) -> None:
        indent = " " * (tab_level * 4)
        self.log(f"{indent}{name}{': ' + value if value else ''}", type=type)
