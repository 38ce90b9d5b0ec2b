# petaboo/database.py

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from petaboo.core.settings import settings

_connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

# Создаем движок подключения к БД
engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args=_connect_args,
)

def configure_sqlite(engine) -> None:
    """
    SQLite: включает внешние ключи и отдаёт управление транзакциями SQLAlchemy,
    иначе pysqlite ломает SAVEPOINT (журнал активности пишется через него).
    """
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

if settings.DATABASE_URL.startswith("sqlite"):
    configure_sqlite(engine)

# Фабрика сессий: по одной сессии на запрос (через get_db), потоки пула их не делят
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,
)

def init_db() -> None:
    """Создаёт таблицы по метаданным моделей (миграций нет)."""
    import petaboo.models  # noqa: F401
    from petaboo.models.base import Base
    Base.metadata.create_all(bind=engine)
