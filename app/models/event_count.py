# SQLAlchemy models

from sqlalchemy import Column, String, BigInteger
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class EventCount(Base):
    __tablename__ = "event_counts"

    event_type = Column(String(255), primary_key=True)
    count = Column(BigInteger, nullable=False)
