from sqlalchemy import Column, Integer, String, DateTime, Float, Text, JSON, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime

from community_watch.core.database import Base


class Report(Base):
    """Anonymous incident report submitted by a resident"""
    __tablename__ = "reports"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Public identifier, CW-####. Not unique: a collision must not drop a submission.
    reference_number = Column(String(20), index=True, nullable=False)

    type = Column(String(100), index=True, nullable=False)
    location = Column(String(500), nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    date = Column(String(50), nullable=True)
    time = Column(String(50), nullable=True)
    description = Column(Text, nullable=False, default="")

    # Stored filenames in upload order
    evidence = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    forward_history = relationship(
        "ForwardEntry",
        order_by="ForwardEntry.id",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Report {self.reference_number}>"


class ForwardEntry(Base):
    """
    One delivered forward of a report to an email group.

    Rows are only ever inserted. Group name and username are snapshots so
    later renames do not rewrite history.
    """
    __tablename__ = "forward_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    report_id = Column(Integer, ForeignKey("reports.id"), nullable=False, index=True)

    to = Column("group_name", String(255), nullable=False)
    sent_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    sent_by = Column(String(100), nullable=False)

    def __repr__(self):
        return f"<ForwardEntry report={self.report_id} to={self.to}>"
