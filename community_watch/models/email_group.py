from sqlalchemy import Column, Integer, String, Text

from community_watch.core.database import Base


class EmailGroup(Base):
    """Named recipient list a report can be forwarded to"""
    __tablename__ = "email_groups"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), unique=True, nullable=False)
    emails = Column(Text, nullable=False)  # Comma-separated list, free text

    @property
    def recipients(self):
        """Addresses split on commas; nothing else is validated"""
        return [address.strip() for address in (self.emails or "").split(",") if address.strip()]

    def __repr__(self):
        return f"<EmailGroup {self.name}>"
