from datetime import date

from poscore.extensions import db
from poscore.models import DocumentSequence, PosTransaction
from poscore.services import sequence_service
from poscore.time_utils import utcnow


def test_invoice_numbers_strictly_increase_without_inserts(db_session):
    first = sequence_service.next_invoice_number()
    second = sequence_service.next_invoice_number()
    third = sequence_service.next_invoice_number()

    assert first == "0000001"
    assert second == "0000002"
    assert third == "0000003"


def test_return_number_format(db_session):
    assert sequence_service.next_return_number() == "RTN-000001"
    assert sequence_service.next_return_number() == "RTN-000002"


def test_transaction_log_ids_restart_per_day(db_session):
    day1 = date(2026, 1, 15)
    day2 = date(2026, 1, 16)
    assert sequence_service.next_transaction_log_id(day1) == "TRX-20260115-00001"
    assert sequence_service.next_transaction_log_id(day1) == "TRX-20260115-00002"
    assert sequence_service.next_transaction_log_id(day2) == "TRX-20260116-00001"


def test_counter_seeds_from_existing_invoices(db_session):
    db.session.add(
        PosTransaction(
            invoice_no="0000041",
            transaction_date=utcnow(),
            payment_method="Cash",
            staff_id=1,
            subtotal_cents=100,
            total_amount_cents=100,
            received_amount_cents=100,
        )
    )
    db.session.commit()

    assert sequence_service.next_invoice_number() == "0000042"


def test_rolled_back_number_is_reissued(db_session):
    issued = sequence_service.next_invoice_number()
    db.session.rollback()

    assert db.session.query(DocumentSequence).count() == 0
    assert sequence_service.next_invoice_number() == issued


def test_parse_number_ignores_garbage():
    assert sequence_service._parse_number("RTN-000012", "RTN-") == 12
    assert sequence_service._parse_number("TRX-20260115-00007", "TRX-") == 7
    assert sequence_service._parse_number("abc") == 0
    assert sequence_service._parse_number(None) == 0
