import os
import logging
from functools import lru_cache
from pathlib import Path
from dotenv import load_dotenv
import get_env_values
from sqlalchemy import select, update, func
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from src.models.customer import Base, Customer, Order
from src.models.user import User
from src.models.sync_log import CustomerSyncLog, SyncStatus
from src.utils import utcnow


load_dotenv(os.path.join(os.path.abspath(Path(__file__).parent), "db.env"))

# Columns an upsert must never overwrite on conflict
_INSERT_ONLY_COLUMNS = ("shopify_id", "created_at")


def build_database_url():
    """
    DATABASE_URL wins; otherwise assemble a postgresql+asyncpg URL from the
    DB_USER / PASSWD / DB_NAME / HOST / PORT variables.
    """
    url = get_env_values.DATABASE_URL
    if url:
        return url
    user, passwd, db_name, host, port = (
        os.environ["DB_USER"], os.environ["PASSWD"], os.environ["DB_NAME"], os.environ["HOST"], os.environ["PORT"]
    )
    return f"postgresql+asyncpg://{user}:{passwd}@{host}:{port}/{db_name}"


class DatabaseManager:
    """
    Manages the asynchronous database engine and sessions, and exposes the
    storage primitives the reconciliation engine builds on: per-entity
    atomic upserts keyed by Shopify ID, the order-set query used for
    aggregate recomputation, the local account lookup used for identity
    linking, and the sync audit rows.
    """
    def __init__(self, database_url: str = None):
        """
        Create the async engine and sessionmaker for the given URL (or the
        environment's).
        """
        self.DATABASE_URL = database_url or build_database_url()
        self.engine = create_async_engine(self.DATABASE_URL, echo=False)  # echo=True for debugging
        self.AsyncSessionLocal = sessionmaker(
            bind=self.engine, class_=AsyncSession, expire_on_commit=False
        )

    async def init_db(self):
        """
        Create all tables in the database if they do not exist.
        Should be called at application startup.
        """
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logging.info("Database tables created or verified.")

    async def dispose(self):
        await self.engine.dispose()

    # --- Upserts ---

    def _insert(self, model):
        if self.engine.dialect.name == "postgresql":
            return pg_insert(model)
        return sqlite_insert(model)

    async def _upsert(self, model, values: dict):
        """
        Single INSERT ... ON CONFLICT (shopify_id) DO UPDATE, so two concurrent
        notifications for a new entity cannot both insert. created_at is only
        written by the insert branch.
        """
        values = dict(values)
        values["last_sync_at"] = utcnow()
        stmt = self._insert(model).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["shopify_id"],
            set_={key: stmt.excluded[key] for key in values if key not in _INSERT_ONLY_COLUMNS},
        )
        async with self.AsyncSessionLocal() as session:
            await session.execute(stmt)
            await session.commit()
            result = await session.execute(select(model).where(model.shopify_id == values["shopify_id"]))
            return result.scalar_one()

    async def upsert_customer(self, values: dict):
        customer = await self._upsert(Customer, values)
        logging.info(f"Customer upserted: ID={customer.id}, Shopify ID={customer.shopify_id}, Email={customer.email}, Orders={customer.orders_count}, Total Spent={customer.total_spent}")
        return customer

    async def upsert_order(self, values: dict):
        order = await self._upsert(Order, values)
        logging.info(f"Order upserted: ID={order.id}, Shopify ID={order.shopify_id}, Name={order.name}, Customer={order.customer_id}, Total={order.total_price}, Status={order.financial_status}")
        return order

    async def update_customer_stats(self, shopify_id: str, stats) -> bool:
        """Overwrite only the derived stats of an existing customer."""
        async with self.AsyncSessionLocal() as session:
            result = await session.execute(
                update(Customer)
                .where(Customer.shopify_id == shopify_id)
                .values(
                    orders_count=stats.orders_count,
                    total_spent=stats.total_spent,
                    average_order_value=stats.average_order_value,
                    last_sync_at=utcnow(),
                )
            )
            await session.commit()
            return result.rowcount == 1

    # --- Reads ---

    async def get_customer(self, shopify_id: str):
        async with self.AsyncSessionLocal() as session:
            result = await session.execute(select(Customer).where(Customer.shopify_id == str(shopify_id)))
            return result.scalar_one_or_none()

    async def get_order(self, shopify_id: str):
        async with self.AsyncSessionLocal() as session:
            result = await session.execute(select(Order).where(Order.shopify_id == str(shopify_id)))
            return result.scalar_one_or_none()

    async def list_order_totals(self, customer_id: str):
        """Total price of every stored order referencing the customer."""
        async with self.AsyncSessionLocal() as session:
            result = await session.execute(
                select(Order.total_price).where(Order.customer_id == str(customer_id))
            )
            return [row[0] for row in result.all()]

    async def list_customers(self):
        async with self.AsyncSessionLocal() as session:
            result = await session.execute(select(Customer).order_by(Customer.id))
            return list(result.scalars().all())

    async def count_customers(self, state: str = None) -> int:
        async with self.AsyncSessionLocal() as session:
            query = select(func.count(Customer.id))
            if state is not None:
                query = query.where(Customer.state == state)
            return (await session.execute(query)).scalar_one()

    # --- Local accounts ---

    async def get_user_by_email(self, email: str):
        async with self.AsyncSessionLocal() as session:
            result = await session.execute(
                select(User).where(func.lower(User.email) == email.strip().lower())
            )
            return result.scalars().first()

    async def link_user_to_customer(self, user_id: int, shopify_customer_id: str) -> bool:
        """
        Attach the Shopify customer ID only if the account has none yet.
        Returns False when another writer linked it first.
        """
        async with self.AsyncSessionLocal() as session:
            result = await session.execute(
                update(User)
                .where(User.id == user_id, User.shopify_customer_id.is_(None))
                .values(shopify_customer_id=str(shopify_customer_id))
            )
            await session.commit()
            return result.rowcount == 1

    # --- Sync audit rows ---

    async def create_sync_log(self, sync_type: str):
        async with self.AsyncSessionLocal() as session:
            sync_log = CustomerSyncLog(sync_type=sync_type, status=SyncStatus.RUNNING, started_at=utcnow())
            session.add(sync_log)
            await session.commit()
            await session.refresh(sync_log)
            return sync_log

    async def finish_sync_log(self, sync_log_id: int, status: str, counts=None, error_message: str = None) -> bool:
        """Move a running record to completed/failed. Finished records are left untouched."""
        async with self.AsyncSessionLocal() as session:
            sync_log = await session.get(CustomerSyncLog, sync_log_id)
            if sync_log is None or sync_log.status != SyncStatus.RUNNING:
                return False
            completed_at = utcnow()
            values = {
                "status": status,
                "error_message": error_message,
                "completed_at": completed_at,
                "duration": (completed_at - sync_log.started_at).total_seconds(),
            }
            if counts is not None:
                values.update(
                    records_total=counts.seen,
                    records_added=counts.added,
                    records_updated=counts.updated,
                    records_skipped=counts.skipped,
                )
            result = await session.execute(
                update(CustomerSyncLog)
                .where(CustomerSyncLog.id == sync_log_id, CustomerSyncLog.status == SyncStatus.RUNNING)
                .values(**values)
            )
            await session.commit()
            return result.rowcount == 1

    async def get_sync_log(self, sync_log_id: int):
        async with self.AsyncSessionLocal() as session:
            return await session.get(CustomerSyncLog, sync_log_id)

    async def latest_sync_log(self):
        async with self.AsyncSessionLocal() as session:
            result = await session.execute(
                select(CustomerSyncLog).order_by(CustomerSyncLog.started_at.desc(), CustomerSyncLog.id.desc()).limit(1)
            )
            return result.scalar_one_or_none()


@lru_cache
def get_db_manager() -> DatabaseManager:
    """FastAPI dependency returning the process-wide DatabaseManager."""
    return DatabaseManager()
