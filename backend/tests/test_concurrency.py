# Overview: Threaded concurrency tests against a file-backed SQLite database.

"""
Concurrency tests for the reservation store and the checkout coordinator.

Each test runs real threads against a file-backed database so SQLite's
write lock is actually contended.
"""
import os
import tempfile
import threading
import unittest

from poscore import create_app
from poscore.extensions import db
from poscore.errors import AvailabilityError
from poscore.services import checkout_service, inventory_service, reservation_service
from poscore.services.checkout_service import PaymentInfo
from poscore.services.pricing_service import CartLine, empty_snapshot


class ConcurrencyTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "concurrency.db")
        self.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
            "SCHEDULER_ENABLED": False,
        })

        with self.app.app_context():
            db.drop_all()
            db.create_all()
            inventory_service.create_product(
                sku="CONCUR-1",
                name="Concurrent Product",
                sale_channel="in-store",
                price_cents=1000,
                quantity=5,
            )
            db.session.commit()

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()
        self.tmpdir.cleanup()

    def _run_threads(self, target, args_list):
        results = []
        lock = threading.Lock()

        def worker(*args):
            with self.app.app_context():
                try:
                    value = target(*args)
                    with lock:
                        results.append(value)
                except Exception as exc:
                    with lock:
                        results.append(exc)
                finally:
                    db.session.remove()

        threads = [threading.Thread(target=worker, args=args) for args in args_list]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        return results

    def test_concurrent_reservations_never_exceed_stock(self):
        results = self._run_threads(
            lambda cart: reservation_service.upsert_reservation(cart, "CONCUR-1", 3),
            [(f"cart-{i}",) for i in range(4)],
        )

        succeeded = [r for r in results if not isinstance(r, Exception)]
        failures = [r for r in results if isinstance(r, Exception)]
        self.assertEqual(len(succeeded), 1)
        self.assertTrue(all(isinstance(f, AvailabilityError) for f in failures))

        with self.app.app_context():
            self.assertEqual(reservation_service.reserved_quantity("CONCUR-1"), 3)

    def test_concurrent_checkouts_do_not_oversell(self):
        def sell():
            return checkout_service.commit_sale(
                [CartLine("CONCUR-1", 3, 1000)],
                PaymentInfo("Cash", 3000),
                staff_id=1,
                snapshot=empty_snapshot(),
            )

        results = self._run_threads(sell, [() for _ in range(3)])

        committed = [r for r in results if not isinstance(r, Exception)]
        self.assertEqual(len(committed), 1)

        with self.app.app_context():
            item = inventory_service.resolve_sku("CONCUR-1")
            on_hand = inventory_service.get_stock_quantity(item.stock_table, item.inventory_item_id)
        self.assertEqual(on_hand, 2)

    def test_holds_plus_sales_never_exceed_stock(self):
        with self.app.app_context():
            reservation_service.upsert_reservation("cart-held", "CONCUR-1", 3)

        def sell():
            return checkout_service.commit_sale(
                [CartLine("CONCUR-1", 1, 1000)],
                PaymentInfo("Cash", 1000),
                staff_id=1,
                snapshot=empty_snapshot(),
            )

        results = self._run_threads(sell, [() for _ in range(5)])

        committed = [r for r in results if not isinstance(r, Exception)]
        failures = [r for r in results if isinstance(r, Exception)]
        self.assertEqual(len(committed), 2)
        self.assertTrue(all(isinstance(f, AvailabilityError) for f in failures))

        with self.app.app_context():
            item = inventory_service.resolve_sku("CONCUR-1")
            on_hand = inventory_service.get_stock_quantity(item.stock_table, item.inventory_item_id)
            held = reservation_service.reserved_quantity("CONCUR-1")
        self.assertEqual(on_hand, 3)
        self.assertLessEqual(held + len(committed), 5)

    def test_concurrent_checkouts_get_distinct_invoice_numbers(self):
        with self.app.app_context():
            item = inventory_service.resolve_sku("CONCUR-1")
            inventory_service.set_stock_quantity(item.stock_table, item.inventory_item_id, 100)
            db.session.commit()

        def sell():
            return checkout_service.commit_sale(
                [CartLine("CONCUR-1", 1, 1000)],
                PaymentInfo("Cash", 1000),
                staff_id=1,
                snapshot=empty_snapshot(),
            ).invoice_no

        results = self._run_threads(sell, [() for _ in range(8)])

        self.assertFalse([r for r in results if isinstance(r, Exception)])
        self.assertEqual(len(results), len(set(results)))


if __name__ == "__main__":
    unittest.main(verbosity=2)
