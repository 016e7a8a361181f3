from sqlalchemy.orm import declarative_base
from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    Boolean,
    ForeignKey,
    false,
)


Base = declarative_base()


# ----------------------------
# ORM models
# ----------------------------
class Registration(Base):
    __tablename__ = "registrations"
    id = Column(Integer, primary_key=True, autoincrement=True)
    serial = Column(String, nullable=False, unique=True)
    email = Column(String, nullable=False)

    # false -> true exactly once, by a conditional UPDATE
    checked_in = Column(Boolean, nullable=False, default=False,
                        server_default=false())
    checked_in_at = Column(Float, nullable=True)  # epoch seconds
    created_at = Column(Float, nullable=False)  # epoch seconds


class Attendee(Base):
    __tablename__ = "attendees"
    id = Column(Integer, primary_key=True, autoincrement=True)
    registration_id = Column(
        Integer, ForeignKey("registrations.id"), nullable=False, index=True
    )
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    vip = Column(Boolean, nullable=False, default=False,
                 server_default=false())
