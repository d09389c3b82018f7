from datetime import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from worldsync.app.core.database import Base


class ConfigEntry(Base):
    """One leaf of the persisted configuration tree.

    The key is the dotted path of the leaf (e.g. ``settings.default.time-speed``)
    and the value is JSON so booleans and numbers survive a round trip.
    """

    __tablename__ = "config_entries"

    key: Mapped[str] = mapped_column(String(512), primary_key=True)
    value: Mapped[str] = mapped_column(Text)
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())
