from unittest.mock import patch

from sqlalchemy.exc import SQLAlchemyError

from poscore.extensions import db
from poscore.models import ActivityLog, SystemSetting
from poscore.services import audit_service


def test_append_activity_and_list(db_session):
    audit_service.append_activity(1, audit_service.ACTIVITY_SALE, "first")
    audit_service.append_activity(2, audit_service.ACTIVITY_SALE, "second")
    audit_service.append_activity(1, audit_service.ACTIVITY_RETURN_PROCESSING, "third")
    db.session.commit()

    assert [a.details for a in audit_service.list_activity(staff_id=1)] == ["third", "first"]
    assert len(audit_service.list_activity(activity_type="sale")) == 2


def test_failed_append_keeps_surrounding_work(db_session):
    db.session.add(SystemSetting(group_name="g", variable_name="v", value="1"))
    db.session.flush()

    with patch.object(audit_service, "ActivityLog", side_effect=SQLAlchemyError("down")):
        assert audit_service.append_activity(1, "sale", "lost") is None

    db.session.commit()
    assert db.session.query(SystemSetting).count() == 1
    assert db.session.query(ActivityLog).count() == 0


def test_transaction_log_ids_are_unique(db_session):
    first = audit_service.append_transaction_log(type="sale")
    second = audit_service.append_transaction_log(type="return")
    db.session.commit()

    assert first.transaction_id != second.transaction_id
    assert first.transaction_id.endswith("-00001")
    assert second.transaction_id.endswith("-00002")
