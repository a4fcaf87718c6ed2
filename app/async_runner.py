"""
app/async_runner.py

Run storage coroutines from Streamlit's synchronous script body.

Streamlit normally executes the script without an event loop, so
``asyncio.run`` is enough.  If a loop is already running in this thread
(e.g. when the page is driven from an async test harness) the coroutine is
executed on a worker thread with its own loop instead.
"""

from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Coroutine, TypeVar

T = TypeVar("T")

_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="async_runner")


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    return _executor.submit(asyncio.run, coro).result()
