"""Bounded condition polling used in place of fixed settle delays.

Every wait here polls an observable condition (a DOM predicate, the
document ready state, a URL change) with exponentially growing intervals
and gives up after a hard timeout.
"""

import time
from typing import Any, Callable, Optional

from court_harvest.lib.errors import NavigationTimeout
from court_harvest.lib.logging_config import get_logger

logger = get_logger()


def wait_for(
    condition: Callable[[], Any],
    timeout: float = 10.0,
    initial_interval: float = 0.1,
    backoff: float = 2.0,
    max_interval: float = 2.0,
    description: str = "condition",
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Any:
    """Poll `condition` until it returns a truthy value or `timeout` elapses.

    Exceptions raised by the condition count as "not ready yet". The
    truthy value is returned; on timeout `NavigationTimeout` is raised.
    """
    deadline = clock() + max(0.0, timeout)
    interval = max(0.01, initial_interval)
    attempts = 0
    last_exc: Optional[BaseException] = None

    while True:
        attempts += 1
        try:
            result = condition()
            if result:
                if attempts > 1:
                    logger.debug(f"{description} ready after {attempts} polls")
                return result
        except Exception as exc:
            last_exc = exc

        remaining = deadline - clock()
        if remaining <= 0:
            break
        sleep(min(interval, remaining))
        interval = min(max_interval, interval * backoff)

    msg = f"Timed out after {timeout:.1f}s waiting for {description}"
    if last_exc is not None:
        msg += f" (last error: {last_exc})"
    raise NavigationTimeout(msg)


def document_ready(driver) -> bool:
    try:
        return driver.execute_script("return document.readyState") == "complete"
    except Exception:
        return False


def wait_for_document_ready(driver, timeout: float = 30.0) -> None:
    wait_for(lambda: document_ready(driver), timeout=timeout, description="document ready")


def wait_for_navigation(driver, previous_url: Optional[str], timeout: float = 30.0) -> None:
    """Wait until the URL differs from `previous_url` and the document is complete.

    When the previous URL is unknown only the ready state is awaited.
    """

    def _navigated():
        try:
            current = driver.current_url
        except Exception:
            return False
        if previous_url is not None and current == previous_url:
            return False
        return document_ready(driver)

    wait_for(_navigated, timeout=timeout, description="navigation")


def settle(seconds: float, sleep: Callable[[float], None] = time.sleep) -> None:
    """Optional floor delay for server-side render lag."""
    if seconds and seconds > 0:
        sleep(seconds)
