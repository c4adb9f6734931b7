from sqlalchemy import Column, Integer, String, DateTime
from src.models.customer import Base
from src.utils import utcnow


class User(Base):
    """
    A storefront account registered locally, independent of Shopify.
    Gains a shopify_customer_id the first time one of its orders is observed.
    """
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=True)
    shopify_customer_id = Column(String, nullable=True, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
