"""
Подключение к базе данных

Пул соединений создается один раз при старте приложения (create_app)
и хранится в app.state; обработчики получают сессию через get_db.
"""

from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite по умолчанию не проверяет внешние ключи и не выполняет ON DELETE CASCADE
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str, pool_size: int = 10, max_overflow: int = 5) -> Engine:
    """Создать движок SQLAlchemy для указанного URL"""
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            # Одна общая in-memory БД для всех потоков
            kwargs["poolclass"] = StaticPool
        engine = create_engine(database_url, **kwargs)
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_engine(
        database_url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=True,
    )


class Database:
    """Владелец пула соединений и фабрики сессий"""

    def __init__(self, database_url: str, pool_size: int = 10, max_overflow: int = 5):
        self.engine = build_engine(database_url, pool_size, max_overflow)
        self.session_factory = sessionmaker(
            bind=self.engine, autocommit=False, autoflush=False, expire_on_commit=False
        )

    def create_all(self) -> None:
        # импорт регистрирует модели в Base.metadata
        from habits_api import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def drop_all(self) -> None:
        Base.metadata.drop_all(bind=self.engine)

    def session(self) -> Session:
        return self.session_factory()

    def dispose(self) -> None:
        self.engine.dispose()


def get_db(request: Request) -> Iterator[Session]:
    """Dependency: сессия БД на время запроса"""
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
