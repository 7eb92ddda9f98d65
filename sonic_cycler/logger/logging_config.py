import sys
import time
from datetime import date
from functools import lru_cache
from pathlib import Path
from typing import ClassVar, Literal, TextIO

import aiofiles
from aiologger import Logger
from aiologger.handlers.base import Handler
from aiologger.levels import LogLevel
from colorama import Fore, Style, init

init(autoreset=True)

ROOT_DIR = Path(__file__).parent.parent.parent.absolute()
LOGS_FILE_PATH = ROOT_DIR / "logs"

SUCCESS_MARKER = "[success]"
LEVEL_WIDTH = 8

LogType = Literal["info", "error", "success", "warning", "debug"]


def split_level(record) -> tuple[str, str]:
    """Return the display level and message, unwrapping the success marker."""
    msg = str(record.msg)
    if record.levelname == "INFO" and msg.startswith(SUCCESS_MARKER):
        return "SUCCESS", msg[len(SUCCESS_MARKER):].lstrip()
    return record.levelname, msg


class _RecordFormatter:
    __slots__ = ('_time_format',)

    time_format: ClassVar[str] = "%H:%M:%S"

    def __init__(self, time_format: str | None = None):
        self._time_format = time_format or self.time_format

    def _timestamp(self, record) -> str:
        return time.strftime(self._time_format, time.localtime(record.created))

    @staticmethod
    def _level(record) -> tuple[str, str, str]:
        levelname, msg = split_level(record)
        return levelname, " " * (LEVEL_WIDTH - len(levelname)), msg


class FileFormatter(_RecordFormatter):
    __slots__ = ()

    time_format = "%Y-%m-%d %H:%M:%S"

    def format(self, record) -> str:
        levelname, padding, msg = self._level(record)
        return f"[{self._timestamp(record)}] | [{record.name}] | [{levelname}]{padding} | {msg}"


class ColoredFormatter(_RecordFormatter):
    __slots__ = ()

    LEVEL_COLORS: ClassVar[dict[str, str]] = {
        "DEBUG": Fore.CYAN,
        "INFO": Fore.WHITE,
        "SUCCESS": Fore.GREEN,
        "WARNING": Fore.YELLOW,
        "ERROR": Fore.RED,
        "CRITICAL": Fore.MAGENTA + Style.BRIGHT,
    }

    def format(self, record) -> str:
        levelname, padding, msg = self._level(record)
        color = self.LEVEL_COLORS.get(levelname, Fore.WHITE)

        return (
            f"{Fore.CYAN}[{self._timestamp(record)}]{Style.RESET_ALL} | "
            f"{color}[{levelname}]{padding}{Style.RESET_ALL} | "
            f"{color}{msg}{Style.RESET_ALL}"
        )


class _StatefulHandler(Handler):
    """aiologger handler that tracks its open state."""

    def __init__(self, level: LogLevel) -> None:
        super().__init__(level=level)
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def close(self) -> None:
        self._initialized = False


class AsyncLevelFileHandler(_StatefulHandler):
    """Appends records to ``logs/<base_name>_<date>.log``, one file per day."""

    def __init__(self, base_name: str = "app_log", level=LogLevel.DEBUG) -> None:
        super().__init__(level=level)
        self.base_name = base_name
        self.formatter = FileFormatter()

    @property
    def file_path(self) -> Path:
        return LOGS_FILE_PATH / f"{self.base_name}_{date.today().isoformat()}.log"

    async def emit(self, record) -> None:
        if not self._initialized:
            LOGS_FILE_PATH.mkdir(parents=True, exist_ok=True)
            self._initialized = True

        async with aiofiles.open(self.file_path, mode="a", encoding="utf-8") as f:
            await f.write(self.formatter.format(record) + "\n")


class AsyncConsoleHandler(_StatefulHandler):
    def __init__(self, level=LogLevel.INFO, stream: TextIO | None = None) -> None:
        super().__init__(level=level)
        self.formatter = ColoredFormatter()
        self.stream = stream or sys.stdout
        self._initialized = True

    async def emit(self, record) -> None:
        self.stream.write(self.formatter.format(record) + "\n")
        self.stream.flush()


class AsyncLogger:
    """
    Mixin and standalone logger. Every message is prefixed with the wallet
    address and the calling class, so a run over many wallets can be
    followed per wallet in both the console and the daily log file.
    """
    __slots__ = ('_logger', '_log_type_methods')

    def __init__(
        self,
        name: str = "Sonic Cycler",
        file_base_name: str = "app_log",
        console_level: LogLevel = LogLevel.INFO,
    ) -> None:
        self._logger = Logger(name=name, level=LogLevel.DEBUG)
        self._logger.add_handler(AsyncConsoleHandler(level=console_level))
        self._logger.add_handler(AsyncLevelFileHandler(base_name=file_base_name))

        self._log_type_methods = {
            "success": self._logger.info,
            "info": self._logger.info,
            "error": self._logger.error,
            "warning": self._logger.warning,
            "debug": self._logger.debug,
        }

    @staticmethod
    @lru_cache(maxsize=128)
    def _build_info(
        address: str | None,
        class_name: str | None,
        method_name: str | None,
    ) -> str:
        return " | ".join(
            f"[{part}]" for part in (address, class_name, method_name) if part
        )

    async def logger_msg(
        self,
        msg: str = "",
        type_msg: LogType = "info",
        address: str | None = None,
        class_name: str | None = None,
        method_name: str | None = None,
    ) -> None:
        if class_name is None and type(self) is not AsyncLogger:
            class_name = type(self).__name__

        info = self._build_info(address, class_name, method_name)
        full_msg = f"{info} {msg}" if info else msg
        if type_msg == "success":
            full_msg = f"{SUCCESS_MARKER} {full_msg}"

        await self._log_type_methods[type_msg](full_msg)
