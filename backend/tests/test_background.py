from datetime import timedelta

from poscore import dispatch
from poscore.models import StockReservation
from poscore.scheduler import PeriodicJob, build_jobs
from poscore.services import reservation_service
from poscore.services.pricing_service import get_snapshot_cache
from poscore.time_utils import utcnow


def test_dispatch_runs_in_app_context(app, db_session, make_product):
    make_product("A", quantity=4)

    future = dispatch.submit(app, reservation_service.check_available, "A", 2)
    availability = future.result(timeout=10)

    assert availability.is_available
    assert availability.total_stock == 4


def test_dispatch_delivers_exceptions(app, db_session):
    def _fail():
        raise ValueError("nope")

    future = dispatch.submit(app, _fail)
    assert isinstance(future.exception(timeout=10), ValueError)


def test_sweep_job_removes_expired_holds(app, db_session, make_product):
    make_product("A", quantity=4)
    reservation_service.upsert_reservation("cart-1", "A", 1, now=utcnow() - timedelta(hours=1))

    jobs = {job.name: job for job in build_jobs(app)}
    assert jobs["reservation-sweep"].run_once() == 1
    assert db_session.query(StockReservation).count() == 0


def test_pricing_job_refreshes_cache(app, db_session):
    jobs = {job.name: job for job in build_jobs(app)}
    snapshot = jobs["pricing-refresh"].run_once()

    assert get_snapshot_cache().peek() is snapshot


def test_failing_job_is_logged_not_raised(app, db_session):
    def _fail():
        raise RuntimeError("boom")

    job = PeriodicJob(app, "failing", 60, _fail)
    assert job.run_once() is None
