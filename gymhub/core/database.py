"""
SQLAlchemy Core plumbing and the GymHub schema.

- Lazily created engine and session factory (QueuePool for server databases,
  a shared StaticPool connection for in-memory SQLite)
- get_db request dependency; services own their commits
- Table definitions for accounts, memberships, trainers, the shop and contact
"""
from typing import Any, Dict, Generator, Optional
from uuid import uuid4
from sqlalchemy import (
    create_engine,
    MetaData,
    Table,
    Column,
    Integer,
    String,
    DateTime,
    Numeric,
    Text,
    Index,
    ForeignKey,
    UniqueConstraint,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.sql import func
import logging
import os

from gymhub.core.config import settings


logger = logging.getLogger("gymhub")

metadata = MetaData()

# Server database pool sizing
POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600  # seconds

_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def new_id() -> str:
    return str(uuid4())


def get_database_url() -> Optional[str]:
    """TEST_DATABASE_URL wins over DATABASE_URL so test runs never touch real data."""
    return (
        os.getenv("TEST_DATABASE_URL")
        or settings.TEST_DATABASE_URL
        or os.getenv("DATABASE_URL")
        or settings.DATABASE_URL
    )


def _engine_options(url: str) -> Dict[str, Any]:
    if not url.startswith("sqlite"):
        return {
            "poolclass": QueuePool,
            "pool_size": POOL_SIZE,
            "max_overflow": MAX_OVERFLOW,
            "pool_timeout": POOL_TIMEOUT,
            "pool_recycle": POOL_RECYCLE,
            "pool_pre_ping": True,
        }
    options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection, or every session would see its own empty database
        options["poolclass"] = StaticPool
    return options


def init_engine(database_url: Optional[str] = None) -> Engine:
    """
    (Re)bind the module engine and session factory.

    Raises:
        ValueError: No URL given and none configured
    """
    global _engine, _SessionLocal

    url = database_url or get_database_url()
    if not url:
        raise ValueError("DATABASE_URL is not configured. Set DATABASE_URL in environment or .env file.")

    _engine = create_engine(url, echo=False, **_engine_options(url))
    _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_engine)
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        init_engine()
    return _engine


def get_session_factory() -> sessionmaker:
    if _SessionLocal is None:
        init_engine()
    return _SessionLocal


def dispose_engine() -> None:
    """Dispose the engine and forget the session factory (tests, shutdown)."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


def get_db() -> Generator[Session, None, None]:
    """FastAPI-friendly DB dependency that yields a Session and closes it.

    Services own their commits; anything left uncommitted when the request
    ends is rolled back by close().
    """
    SessionLocal = get_session_factory()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_all_tables(engine: Optional[Engine] = None):
    """Create any missing GymHub tables; existing ones are left alone."""
    metadata.create_all(bind=engine or get_engine())


def drop_all_tables(engine: Optional[Engine] = None):
    """Drop every GymHub table. Tests and local resets only."""
    metadata.drop_all(bind=engine or get_engine())


def check_connection() -> bool:
    """True when a trivial query succeeds against the configured database."""
    try:
        engine = get_engine()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except (SQLAlchemyError, ValueError) as e:
        logger.warning(f"Database connection check failed: {e}")
        return False


# Trainers (owner-managed; optional portal login)
trainers = Table(
    'trainers',
    metadata,
    Column('id', String(36), primary_key=True, default=new_id),
    Column('name', String(200), nullable=False),
    Column('qualification', String(200), nullable=False),
    Column('image_url', Text, nullable=True),
    Column('champion_details', Text, nullable=True),
    Column('email', String(320), nullable=True, unique=True),
    Column('password_hash', String(200), nullable=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
    Index('idx_trainers_created_at', 'created_at'),
)

# Users, including the membership entitlement fields
users = Table(
    'users',
    metadata,
    Column('id', String(36), primary_key=True, default=new_id),
    Column('name', String(200), nullable=False),
    Column('email', String(320), nullable=False, unique=True),
    Column('password_hash', String(200), nullable=False),
    Column('role', String(20), nullable=False, server_default='USER'),
    Column('height_cm', Integer, nullable=True),
    Column('weight_kg', Numeric(6, 2), nullable=True),
    Column('place', String(100), nullable=True),
    Column('bio', String(300), nullable=True),
    Column('membership_plan', String(20), nullable=True),
    Column('plan_starts_at', DateTime(timezone=True), nullable=True),
    Column('plan_ends_at', DateTime(timezone=True), nullable=True),
    Column('trainers_limit', Integer, nullable=True),
    Column('free_products_per_month', Integer, nullable=True),
    Column('trainer_id', String(36), ForeignKey('trainers.id', ondelete='SET NULL'), nullable=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
    Index('idx_users_role', 'role'),
    Index('idx_users_created_at', 'created_at'),
)

# Many-to-many user <-> trainer links
user_trainers = Table(
    'user_trainers',
    metadata,
    Column('id', String(36), primary_key=True, default=new_id),
    Column('user_id', String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
    Column('trainer_id', String(36), ForeignKey('trainers.id', ondelete='CASCADE'), nullable=False),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    UniqueConstraint('user_id', 'trainer_id', name='uq_user_trainers_user_trainer'),
    Index('idx_user_trainers_trainer', 'trainer_id'),
)

# Membership plan catalog
plans = Table(
    'plans',
    metadata,
    Column('id', String(36), primary_key=True, default=new_id),
    Column('name', String(200), nullable=False),
    Column('description', Text, nullable=True),
    Column('image_url', Text, nullable=True),
    Column('price', Numeric(10, 2), nullable=False),
    Column('membership_plan', String(20), nullable=True),
    Column('plan_duration_days', Integer, nullable=True),
    Column('plan_trainers_limit', Integer, nullable=True),
    Column('plan_free_products', Integer, nullable=True),
    Column('discount_percent', Integer, nullable=True),
    Column('discount_starts_at', DateTime(timezone=True), nullable=True),
    Column('discount_ends_at', DateTime(timezone=True), nullable=True),
    Column('free_product_bonus_count', Integer, nullable=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
    Index('idx_plans_created_at', 'created_at'),
)

# Shop products
products = Table(
    'products',
    metadata,
    Column('id', String(36), primary_key=True, default=new_id),
    Column('name', String(200), nullable=False),
    Column('description', Text, nullable=True),
    Column('image_url', Text, nullable=True),
    Column('price', Numeric(10, 2), nullable=False),
    Column('stock', Integer, nullable=False, server_default='0'),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
    Index('idx_products_created_at', 'created_at'),
)

# Cart lines; unit price is always read live from products
cart_items = Table(
    'cart_items',
    metadata,
    Column('id', String(36), primary_key=True, default=new_id),
    Column('user_id', String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
    Column('product_id', String(36), ForeignKey('products.id'), nullable=False),
    Column('quantity', Integer, nullable=False),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    UniqueConstraint('user_id', 'product_id', name='uq_cart_items_user_product'),
)

# Orders (CONFIRMED on creation, immutable afterwards)
orders = Table(
    'orders',
    metadata,
    Column('id', String(36), primary_key=True, default=new_id),
    Column('user_id', String(36), ForeignKey('users.id'), nullable=False),
    Column('payment_method', String(10), nullable=False),
    Column('status', String(20), nullable=False),
    Column('total', Numeric(10, 2), nullable=False),
    Column('created_at', DateTime(timezone=True), nullable=False),
    # Monthly freebie accounting scans (user_id, created_at)
    Index('idx_orders_user_created', 'user_id', 'created_at'),
)

# Order lines with the price snapshotted at purchase time
order_items = Table(
    'order_items',
    metadata,
    Column('id', String(36), primary_key=True, default=new_id),
    Column('order_id', String(36), ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
    Column('product_id', String(36), ForeignKey('products.id'), nullable=False),
    Column('quantity', Integer, nullable=False),
    Column('price_at_purchase', Numeric(10, 2), nullable=False),
    Index('idx_order_items_order', 'order_id'),
    Index('idx_order_items_product', 'product_id'),
)

# Public contact form submissions
contact_messages = Table(
    'contact_messages',
    metadata,
    Column('id', String(36), primary_key=True, default=new_id),
    Column('name', String(200), nullable=False),
    Column('email', String(320), nullable=False),
    Column('phone', String(50), nullable=True),
    Column('message', Text, nullable=False),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
)
