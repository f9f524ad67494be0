import pytest

from poscore.extensions import db
from poscore.models import SystemSetting
from poscore.services import settings_service


def test_vat_defaults_to_zero(db_session):
    assert not settings_service.is_vat_enabled()
    assert settings_service.get_vat_rate() == 0


def test_configure_vat_creates_then_updates(db_session):
    settings_service.configure_vat(True, 12)
    db.session.commit()
    assert settings_service.get_vat_rate() == 12

    settings_service.configure_vat(True, 5)
    db.session.commit()
    assert settings_service.get_vat_rate() == 5
    assert db.session.query(SystemSetting).filter_by(group_name="vat_settings").count() == 2


def test_invalid_rate_value_reads_as_zero(db_session):
    settings_service.set_setting("vat_settings", "vat_enabled", "1")
    settings_service.set_setting("vat_settings", "vat_rate", "twelve")
    db.session.commit()
    assert settings_service.get_vat_rate() == 0


def test_negative_rate_rejected(db_session):
    with pytest.raises(ValueError):
        settings_service.configure_vat(True, -1)
