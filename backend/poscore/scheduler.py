# Overview: Background workers for the reservation sweep and the pricing snapshot refresh.

"""
Periodic jobs run on daemon threads, each inside its own app context.

- reservation sweep: every RESERVATION_SWEEP_INTERVAL_SECONDS, deletes
  reservations whose expires_at has passed
- pricing refresh: every PROMOTION_REFRESH_SECONDS, reloads the pricing
  snapshot so registers pick up new promotions and VAT changes

A failing run is logged and the loop keeps going.
"""

from __future__ import annotations

import logging
import threading

from flask import Flask

from .extensions import db


logger = logging.getLogger(__name__)


class PeriodicJob:
    def __init__(self, app: Flask, name: str, interval_seconds: int, func):
        self.app = app
        self.name = name
        self.interval_seconds = interval_seconds
        self.func = func
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def run_once(self):
        with self.app.app_context():
            try:
                return self.func()
            except Exception:
                db.session.rollback()
                logger.warning("Background job %s failed", self.name, exc_info=True)
                return None
            finally:
                db.session.remove()

    def _loop(self):
        while not self._stop.wait(self.interval_seconds):
            self.run_once()

    def start(self) -> threading.Thread:
        if self._thread is not None and self._thread.is_alive():
            return self._thread
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name=f"poscore-{self.name}", daemon=True)
        self._thread.start()
        return self._thread

    def stop(self, timeout: float | None = None):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)


def _sweep_reservations():
    from .services.reservation_service import sweep_expired
    return sweep_expired()


def _refresh_pricing():
    from .services.pricing_service import get_snapshot_cache
    return get_snapshot_cache().refresh()


def build_jobs(app: Flask) -> list[PeriodicJob]:
    return [
        PeriodicJob(
            app,
            "reservation-sweep",
            app.config["RESERVATION_SWEEP_INTERVAL_SECONDS"],
            _sweep_reservations,
        ),
        PeriodicJob(
            app,
            "pricing-refresh",
            app.config["PROMOTION_REFRESH_SECONDS"],
            _refresh_pricing,
        ),
    ]


def start_scheduler(app: Flask) -> list[PeriodicJob]:
    """Start the background jobs once per application."""
    jobs = app.extensions.get("poscore.scheduler")
    if jobs:
        return jobs
    jobs = build_jobs(app)
    for job in jobs:
        job.start()
    app.extensions["poscore.scheduler"] = jobs
    logger.info("Started %s background jobs", len(jobs))
    return jobs


def stop_scheduler(app: Flask, timeout: float | None = None) -> None:
    for job in app.extensions.pop("poscore.scheduler", []):
        job.stop(timeout)
