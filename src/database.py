import logging
from uuid import uuid4

from asyncpg import Connection
from sqlalchemy import (
    JSON, Boolean, Column, ForeignKey, Integer, String,
    func, DateTime,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase, relationship
from sqlalchemy.pool import StaticPool

from config import DATABASE_URL

logger = logging.getLogger(__name__)


class Base(DeclarativeBase): pass


class FixedConnection(Connection):
    def _get_unique_id(self, prefix: str) -> str:
        return f'__asyncpg_{prefix}_{uuid4()}__'


def build_engine(url: str = DATABASE_URL):
    if url.startswith("sqlite"):
        # One shared connection so an in-memory database survives across sessions
        return create_async_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_async_engine(
        url,
        echo=False,
        future=True,
        connect_args={
            "statement_cache_size": 0,
            "prepared_statement_cache_size": 0,
            "connection_class": FixedConnection,
        }
    )


engine = build_engine()

# Фабрика сессий
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False
)


async def get_session():
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_models(bind=None):
    """Create tables once at startup."""
    bind = bind or engine
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready")


# Team columns hold a two-element list of player ids
TeamType = JSON().with_variant(JSONB(), "postgresql")

#ORM

class TournamentORM(Base):
    __tablename__ = "tournaments"

    id            = Column(String, primary_key=True)
    access_code   = Column(String, nullable=False, index=True)
    date          = Column(String, nullable=False)
    current_round = Column(Integer, nullable=False, default=1)
    is_finalized  = Column(Boolean, nullable=False, default=False)
    created_at    = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    players = relationship(
        "PlayerORM",
        back_populates="tournament",
        cascade="all, delete-orphan",
        order_by="PlayerORM.id",
        lazy="selectin",
    )
    matches = relationship(
        "MatchORM",
        back_populates="tournament",
        cascade="all, delete-orphan",
        order_by="MatchORM.id",
        lazy="selectin",
    )


class PlayerORM(Base):
    __tablename__ = "players"

    tournament_id = Column(String, ForeignKey("tournaments.id", ondelete="CASCADE"), primary_key=True)
    id            = Column(Integer, primary_key=True, autoincrement=False)
    name          = Column(String, nullable=False)
    total_score   = Column(Integer, nullable=False, default=0)

    tournament = relationship("TournamentORM", back_populates="players")


class MatchORM(Base):
    __tablename__ = "matches"

    tournament_id = Column(String, ForeignKey("tournaments.id", ondelete="CASCADE"), primary_key=True)
    id            = Column(Integer, primary_key=True, autoincrement=False)
    round         = Column(Integer, nullable=False)
    team_a        = Column(TeamType, nullable=False)   # [player1, player2]
    team_b        = Column(TeamType, nullable=False)
    score_a       = Column(Integer, nullable=True)
    score_b       = Column(Integer, nullable=True)
    completed     = Column(Boolean, nullable=False, default=False)

    tournament = relationship("TournamentORM", back_populates="matches")
