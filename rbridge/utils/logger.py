#!filepath: rbridge/utils/logger.py
import sys
from functools import wraps
from pathlib import Path
from time import perf_counter
from typing import Callable, Optional

from loguru import logger


class Logging:
    """
    Process-wide logging facade over loguru.
    ---------------------------------------
    - stderr sink by default
    - optional dated file sink with rotation / retention
    - function-level catch decorator
    ---------------------------------------
    """

    def __init__(
        self,
        log_dir: Optional[str] = None,
        rotation: str = "1 day",
        retention: str = "30 days",
        log_level: str = "INFO",
    ):
        self.log_dir = log_dir
        self.rotation = rotation
        self.retention = retention
        self.level = log_level

        self._configure()

    def _configure(self) -> None:
        logger.remove()

        if self.log_dir is None:
            logger.add(
                sink=sys.stderr,
                level=self.level,
                format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}",
            )
            return

        Path(self.log_dir).mkdir(parents=True, exist_ok=True)
        logger.add(
            sink=f"{self.log_dir}/{{time:YYYY-MM-DD}}.log",
            rotation=self.rotation,
            retention=self.retention,
            level=self.level,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}",
            enqueue=True,
            backtrace=True,
            diagnose=False,
        )
        logger.info("-----------Logger initialized: {}-----------", self.log_dir)

    # ----------- log methods -----------
    def debug(self, msg: str, *args, **kwargs):
        logger.opt(depth=1).debug(msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        logger.opt(depth=1).info(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        logger.opt(depth=1).warning(msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        logger.opt(depth=1).error(msg, *args, **kwargs)

    # ---------- decorator ----------
    def catch(
        self,
        msg: str = "Exception occurred",
        log_time: bool = False,
    ) -> Callable:
        """
        Log and re-raise any exception escaping the wrapped function.
        """

        def decorator(func: Callable):
            @wraps(func)
            def wrapper(*args, **kwargs):
                start = perf_counter()

                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    logger.error(f"[ERROR] {func.__name__}: {msg}: {e}")
                    raise

                if log_time:
                    cost = perf_counter() - start
                    logger.debug(f"[TIME] {func.__name__} took {cost:.4f}s")

                return result

            return wrapper

        return decorator


# default global logs (replaced by init_logging)
logs = Logging()


def init_logging(cfg) -> Logging:
    """
    Reconfigure the shared `logs` instance from a LogConfig.
    """
    logs.log_dir = cfg.dir
    logs.rotation = cfg.rotation
    logs.retention = cfg.retention
    logs.level = cfg.level
    logs._configure()
    return logs
