"""
Daemon Thread Executor

Runs each submitted call on its own daemon thread. A generation call the
session has given up on keeps running in the background but never keeps
the process alive at exit.
"""

import logging
import threading
from concurrent.futures import Executor, Future

logger = logging.getLogger(__name__)


class DaemonThreadExecutor(Executor):
    """Executor that starts one daemon thread per submitted call."""

    def __init__(self, thread_name_prefix: str = "face-patch-worker"):
        self.thread_name_prefix = thread_name_prefix
        self._shutdown = False
        self._lock = threading.Lock()
        self._counter = 0

    def submit(self, fn, *args, **kwargs) -> Future:
        with self._lock:
            if self._shutdown:
                raise RuntimeError("Cannot submit after shutdown")
            self._counter += 1
            name = f"{self.thread_name_prefix}-{self._counter}"

        future: Future = Future()

        def run():
            if not future.set_running_or_notify_cancel():
                return
            try:
                result = fn(*args, **kwargs)
            except BaseException as e:
                future.set_exception(e)
            else:
                future.set_result(result)

        threading.Thread(target=run, name=name, daemon=True).start()
        logger.debug(f"Started worker thread {name}")
        return future

    def shutdown(self, wait: bool = True, *, cancel_futures: bool = False) -> None:
        """Refuse new work; running threads are left to finish on their own."""
        with self._lock:
            self._shutdown = True
