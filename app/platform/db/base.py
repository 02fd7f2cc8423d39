import sqlalchemy
from sqlalchemy import Column, String
from sqlalchemy.orm import declarative_base
from uuid6 import uuid7

Base = declarative_base()


class BaseModel(Base):
    __abstract__ = True
    # server-generated timestamps are fetched on flush; async sessions cannot lazy-load them
    __mapper_args__ = {"eager_defaults": True}

    id =Column(String(36), primary_key=True, default=lambda: str(uuid7()), index=True)
    created_at = Column(
        sqlalchemy.DateTime(timezone=True), server_default=sqlalchemy.func.now(), nullable=False
    )
    updated_at = Column(
        sqlalchemy.DateTime(timezone=True),
        server_default=sqlalchemy.func.now(),
        onupdate=sqlalchemy.func.now(),
        nullable=False,
    )

# Models import this Base; the model registry lives in app/platform/db/models.py
# so that Alembic and the test suite see every table.
