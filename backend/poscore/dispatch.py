# Overview: Runs blocking coordinator calls on a worker pool, each inside an app context.

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor

from flask import Flask

from .extensions import db


_lock = threading.Lock()


def get_executor(app: Flask) -> ThreadPoolExecutor:
    executor = app.extensions.get("poscore.executor")
    if executor is None:
        with _lock:
            executor = app.extensions.get("poscore.executor")
            if executor is None:
                executor = ThreadPoolExecutor(
                    max_workers=app.config.get("DISPATCH_MAX_WORKERS", 4),
                    thread_name_prefix="poscore-dispatch",
                )
                app.extensions["poscore.executor"] = executor
    return executor


def _call_in_context(app: Flask, func, args, kwargs):
    with app.app_context():
        try:
            return func(*args, **kwargs)
        finally:
            db.session.remove()


def submit(app: Flask, func, *args, **kwargs) -> Future:
    """
    Run func(*args, **kwargs) off the caller's thread.

    Each call gets its own app context and session; exceptions are delivered
    through the returned Future.
    """
    return get_executor(app).submit(_call_in_context, app, func, args, kwargs)


def shutdown(app: Flask, wait: bool = True) -> None:
    executor = app.extensions.pop("poscore.executor", None)
    if executor is not None:
        executor.shutdown(wait=wait)
