"""
Participant model: one row per accepted signup.

Key design decisions:
- `id` is assigned by the database at insert and never reused
- Rows are append-only; nothing in the service updates or deletes them
- Boolean flags carry server defaults so a partial insert still yields false
"""

from sqlalchemy import Boolean, Column, Integer, String, Text, false

from signup_api.db.base import Base, TimestampMixin


class Participant(Base, TimestampMixin):
    __tablename__ = "participants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    firstname = Column(String(50), nullable=False)
    lastname = Column(String(50), nullable=False)
    email = Column(String(255), nullable=False)
    diet = Column(Text, nullable=True)
    alcohol = Column(Boolean, nullable=False, server_default=false())
    table_group = Column(Text, nullable=True)
    avec = Column(String(100), nullable=True)
    organisation = Column(String(255), nullable=True)
    gift = Column(Boolean, nullable=False, server_default=false())
    invited = Column(Boolean, nullable=False, server_default=false())
    alumni = Column(Boolean, nullable=False, server_default=false())
    sillis = Column(Boolean, nullable=False, server_default=false())

    def __repr__(self) -> str:
        return f"<Participant(id={self.id}, name={self.firstname} {self.lastname})>"
