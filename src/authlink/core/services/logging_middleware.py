"""Call logging for service methods."""

import functools
import time
from collections.abc import Callable
from typing import ParamSpec, TypeVar

from loguru import logger

from src.authlink.core.errors import error_code

P = ParamSpec("P")
R = TypeVar("R")


def logged(func: Callable[P, R]) -> Callable[P, R]:
    """Log method name, duration and error code of every call."""

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        begin = time.perf_counter()
        err: BaseException | None = None
        try:
            return func(*args, **kwargs)
        except BaseException as exc:
            err = exc
            raise
        finally:
            took_ms = round((time.perf_counter() - begin) * 1000, 1)
            log = logger.bind(method=func.__qualname__, took_ms=took_ms)
            if err is None:
                log.debug("{} ok in {}ms", func.__qualname__, took_ms)
            else:
                log.bind(error_code=str(error_code(err))).info(
                    "{} failed in {}ms: {}", func.__qualname__, took_ms, err
                )

    return wrapper
