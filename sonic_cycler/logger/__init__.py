from .logging_config import AsyncLogger
