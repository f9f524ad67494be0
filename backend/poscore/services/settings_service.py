# Overview: Service-layer operations for grouped system settings (VAT).

from __future__ import annotations

from ..extensions import db
from ..models import SystemSetting


VAT_GROUP = "vat_settings"
VAT_ENABLED_KEY = "vat_enabled"
VAT_RATE_KEY = "vat_rate"


def get_settings_by_group(group_name: str) -> dict[str, str]:
    rows = db.session.query(SystemSetting).filter_by(group_name=group_name).all()
    return {row.variable_name: row.value for row in rows}


def set_setting(group_name: str, variable_name: str, value: str | None) -> SystemSetting:
    """Create or update one setting. Does not commit."""
    row = (
        db.session.query(SystemSetting)
        .filter_by(group_name=group_name, variable_name=variable_name)
        .first()
    )
    if row is None:
        row = SystemSetting(group_name=group_name, variable_name=variable_name)
        db.session.add(row)
    row.value = value
    db.session.flush()
    return row


def is_vat_enabled(settings: dict[str, str] | None = None) -> bool:
    settings = settings if settings is not None else get_settings_by_group(VAT_GROUP)
    return settings.get(VAT_ENABLED_KEY, "0") == "1"


def get_vat_rate(settings: dict[str, str] | None = None) -> int:
    """
    VAT rate as an integer percent.

    0 when VAT is disabled, unset or not a valid integer.
    """
    settings = settings if settings is not None else get_settings_by_group(VAT_GROUP)
    if not is_vat_enabled(settings):
        return 0
    try:
        rate = int(settings.get(VAT_RATE_KEY, "0"))
    except (TypeError, ValueError):
        return 0
    return max(rate, 0)


def configure_vat(enabled: bool, rate: int | None = None) -> None:
    set_setting(VAT_GROUP, VAT_ENABLED_KEY, "1" if enabled else "0")
    if rate is not None:
        if rate < 0:
            raise ValueError("VAT rate cannot be negative")
        set_setting(VAT_GROUP, VAT_RATE_KEY, str(rate))
