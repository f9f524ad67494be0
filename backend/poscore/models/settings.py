from __future__ import annotations

from ..extensions import db
from poscore.time_utils import to_utc_z


class SystemSetting(db.Model):
    """Grouped key/value settings (e.g. vat_settings.vat_rate)."""
    __tablename__ = "system_settings"
    __table_args__ = (
        db.UniqueConstraint("group_name", "variable_name", name="uq_system_settings_group_var"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    group_name = db.Column(db.String(64), nullable=False, index=True)
    variable_name = db.Column(db.String(64), nullable=False)
    value = db.Column(db.Text, nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "group_name": self.group_name,
            "variable_name": self.variable_name,
            "value": self.value,
            "updated_at": to_utc_z(self.updated_at),
        }
