from sqlalchemy import (
    Column,
    ForeignKey,
    Index,
    String,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class Client(Base):
    __tablename__ = "clients"

    client_id = Column(String, primary_key=True)
    tenant_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)  # Display name, sortable via "client.name"


class Template(Base):
    __tablename__ = "templates"

    template_id = Column(String, primary_key=True)
    tenant_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)  # Display name, sortable via "template.name"


class Item(Base):
    __tablename__ = "items"

    item_id = Column(String, primary_key=True)
    tenant_id = Column(String, nullable=False)
    name = Column(String, nullable=False)
    client_id = Column(String, ForeignKey("clients.client_id"), nullable=True, index=True)
    template_id = Column(String, ForeignKey("templates.template_id"), nullable=True, index=True)
    created_at_utc = Column(String, nullable=False)  # ISO 8601 string, fixed microsecond precision

    # Many-to-one: at most one related row per item, safe to join for sorting
    client = relationship(Client, lazy="raise")
    template = relationship(Template, lazy="raise")

    # One-to-many: joining this would duplicate item rows
    attachments = relationship("Attachment", back_populates="item", lazy="raise")

    __table_args__ = (
        Index("idx_items_tenant_created", "tenant_id", "created_at_utc"),
    )


class Attachment(Base):
    __tablename__ = "attachments"

    attachment_id = Column(String, primary_key=True)
    item_id = Column(String, ForeignKey("items.item_id"), nullable=False, index=True)
    tenant_id = Column(String, nullable=False)
    filename = Column(String, nullable=False)

    item = relationship(Item, back_populates="attachments", lazy="raise")
