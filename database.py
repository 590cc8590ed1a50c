# database.py
from sqlalchemy import (
    create_engine,
    Column,
    Integer,
    String,
    Float,
    DateTime,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from fastapi import Request
from datetime import datetime, timezone

Base = declarative_base()


def utcnow() -> datetime:
    """Current time as naive UTC, the form every stored date uses."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "user"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    name = Column(String, nullable=False)


class Expense(Base):
    __tablename__ = "expense"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    title = Column(String, nullable=False)
    description = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    date = Column(DateTime, index=True, nullable=False)
    type = Column(String, nullable=False)
    # No foreign key: deleting a user leaves its expenses behind.
    user_id = Column(Integer, index=True, nullable=False)


def create_db_engine(database_url: str) -> Engine:
    kwargs = {}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every session sees its own empty db
            kwargs["poolclass"] = StaticPool
    # Keep bound values (emails, password hashes) out of error messages
    return create_engine(database_url, hide_parameters=True, **kwargs)


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autoflush=False, bind=engine)


def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def owned_query(db: Session, model, owner_id: int, *columns):
    """
    Query over the rows of ``model`` that belong to ``owner_id``.

    Pass ``columns`` to select aggregates instead of whole rows.
    """
    return db.query(*(columns or (model,))).filter(model.user_id == owner_id)


def get_owned(db: Session, model, resource_id: int, owner_id: int):
    """
    Fetch one row by id, scoped to its owner.

    A row owned by someone else comes back as None, same as a missing one.
    """
    return owned_query(db, model, owner_id).filter(model.id == resource_id).first()
