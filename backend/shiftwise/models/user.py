"""Cloud user model."""

from decimal import Decimal

from sqlalchemy import Column, DateTime, Numeric, String

from shiftwise.core.database import Base
from shiftwise.core.db_types import UUID
from shiftwise.utils.datetime_utils import utc_now_lambda


class User(Base):
    """Cloud user record.

    The primary key is the authenticated identity supplied by the auth
    provider, so it has no generated default.
    """

    __tablename__ = "users"

    id = Column(UUID(), primary_key=True)
    username = Column(String(255), nullable=False, unique=True)
    balance = Column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)
    created_at = Column(DateTime, default=utc_now_lambda, nullable=False)

    def __repr__(self):
        return f"<User {self.username}>"
