from sqlalchemy import Column, Integer, String, DateTime, Float, Text, Index
from src.models.customer import Base
from src.utils import utcnow


class SyncKind:
    CUSTOMER_CREATE = "customer-create"
    CUSTOMER_UPDATE = "customer-update"
    ORDER_CREATE = "order-create"
    ORDER_UPDATE = "order-update"
    MANUAL_BULK = "manual-bulk"


class SyncStatus:
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class CustomerSyncLog(Base):
    """One row per reconciliation attempt."""
    __tablename__ = "customer_sync_logs"
    id = Column(Integer, primary_key=True, index=True)
    sync_type = Column(String, nullable=False)
    status = Column(String, nullable=False, default=SyncStatus.RUNNING)
    records_total = Column(Integer, nullable=False, default=0)
    records_added = Column(Integer, nullable=False, default=0)
    records_updated = Column(Integer, nullable=False, default=0)
    records_skipped = Column(Integer, nullable=False, default=0)
    error_message = Column(Text, nullable=True)
    started_at = Column(DateTime, nullable=False, default=utcnow)
    completed_at = Column(DateTime, nullable=True)
    duration = Column(Float, nullable=True)

    __table_args__ = (Index("ix_sync_logs_started_at", "started_at"),)
