import logging
import os

import alembic.command
import alembic.config
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from .config import settings

logger = logging.getLogger(__name__)

DATABASE_URL = str(settings.database_url)

class Base(DeclarativeBase):
    pass

@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection
    if type(dbapi_connection).__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

def sync_url(url: str) -> str:
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg2://", 1)
    return url

class DatabaseSessionManager:
    def __init__(self, url: str = DATABASE_URL):
        self.engine = create_engine(sync_url(url), echo=settings.sql_echo)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def get_db(self):
        db = self.SessionLocal()
        try:
            yield db
        finally:
            db.close()

class AlembicManager:
    def __init__(self):
        project_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        alembic_ini_path = os.path.join(project_dir, "alembic.ini")

        self.alembic_config = alembic.config.Config(alembic_ini_path)
        self.alembic_config.set_main_option("script_location", os.path.join(project_dir, "alembic"))
        self.alembic_config.set_main_option("sqlalchemy.url", sync_url(DATABASE_URL))
        self.alembic_config.attributes["configure_logger"] = False

    def create_database(self):
        # Model modules must be imported so their tables are registered on Base.metadata
        from .v1 import models  # noqa: F401
        Base.metadata.create_all(bind=database_session_manager.engine)

    def run_migrations(self):
        try:
            alembic.command.upgrade(self.alembic_config, "head")
        except OperationalError as e:
            logger.warning("Migrations could not run (%s), creating schema from models", e)
            self.create_database()
            alembic.command.stamp(self.alembic_config, "head")

database_session_manager = DatabaseSessionManager()
alembic_manager = AlembicManager()
