"""Run a callable under a wall-clock bound."""

import threading
from typing import Any, Callable, Optional

from pbt_engine.errors import TrialTimeout


def call_with_timeout(fn: Callable[..., Any], *args: Any, timeout: Optional[float] = None) -> Any:
    """Call ``fn(*args)`` and return its result, or raise :class:`TrialTimeout`.

    Args:
        fn: The callable to run.
        args: Positional arguments for ``fn``.
        timeout: Maximum execution time in seconds. ``None`` calls ``fn``
            inline with no bound.

    Returns:
        Whatever ``fn`` returns. Exceptions raised by ``fn`` propagate.

    A call that overruns is abandoned on a daemon thread; Python cannot
    interrupt it, but it no longer blocks the caller or interpreter exit.
    """
    if timeout is None:
        return fn(*args)

    outcome: dict[str, Any] = {}

    def _target() -> None:
        try:
            outcome["result"] = fn(*args)
        except BaseException as e:  # re-raised on the calling thread
            outcome["error"] = e

    worker = threading.Thread(target=_target, name="pbt-trial", daemon=True)
    worker.start()
    worker.join(timeout)
    if worker.is_alive():
        raise TrialTimeout(f"Execution timed out after {timeout}s")
    if "error" in outcome:
        raise outcome["error"]
    return outcome.get("result")
