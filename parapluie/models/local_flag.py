"""Device-local key/value flag model."""

from sqlalchemy import Column, String, Text

from .base import BaseModel


class LocalFlag(BaseModel):
    """A persisted key/value pair scoped to one device."""

    __tablename__ = "local_flags"

    namespace = Column(
        String(64),
        primary_key=True,
        comment="Device or installation identifier",
    )

    key = Column(
        String(128),
        primary_key=True,
        comment="Flag key, e.g. @parapluie/onboardingCompleted",
    )

    value = Column(Text, nullable=False, comment="String value")

    def __repr__(self):
        return f"<LocalFlag(namespace={self.namespace}, key={self.key})>"
