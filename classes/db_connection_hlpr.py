import logging
import os
from typing import Callable

from google.cloud import secretmanager
from google.oauth2 import service_account
from google.auth import default as google_auth_default

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from dotenv import load_dotenv

from classes.entities import Base

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

logger = logging.getLogger("formwizard_backend")


class DbConnection:
    def __init__(self, database_url: str | None = None) -> None:
        # ---- env config ----
        self.PROJECT_ID   = os.getenv("PROJECT_ID", "")
        self.DB_HOST      = os.getenv("DB_HOST", "localhost")
        self.DB_PORT      = int(os.getenv("DB_PORT", "5432"))
        self.DB_NAME      = os.getenv("DB_NAME", "")
        self.DB_USER      = os.getenv("DB_USER", "")
        self.DB_PASSWORD  = os.getenv("DB_PASSWORD", "")
        self.DB_SECRET_ID = os.getenv("DB_SECRET_ID", "")
        self.SQLITE_PATH  = os.getenv("SQLITE_PATH", "formwizard.db")

        # An explicit url (or DATABASE_URL in .env) skips the host/secret lookup
        self.DATABASE_URL = database_url or os.getenv("DATABASE_URL", "")
        self.IS_LOCAL = self.DB_HOST == "localhost"
        if not self.DATABASE_URL:
            if self.IS_LOCAL:
                self.DATABASE_URL = f"sqlite:///{self.SQLITE_PATH}"
            else:
                self.DATABASE_URL = (
                    f"postgresql+pg8000://{self.DB_USER}:{self._get_db_password_lazy()}"
                    f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
                )

    # -------- GCP auth / creds --------
    def _build_creds(self):
        key_path = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
        scopes = ["https://www.googleapis.com/auth/cloud-platform"]
        if key_path and os.path.exists(key_path):
            return service_account.Credentials.from_service_account_file(key_path, scopes=scopes)
        creds, _ = google_auth_default(scopes=scopes)
        return creds

    # -------- DB password (Secret Manager) --------
    def _get_db_password_lazy(self) -> str:
        if self.DB_PASSWORD:
            return self.DB_PASSWORD
        if self.DB_SECRET_ID:
            client = secretmanager.SecretManagerServiceClient(credentials=self._build_creds())
            name = client.secret_version_path(self.PROJECT_ID, self.DB_SECRET_ID, "latest")
            resp = client.access_secret_version(request={"name": name})
            self.DB_PASSWORD = resp.payload.data.decode("utf-8")
            return self.DB_PASSWORD
        raise RuntimeError("No DB_PASSWORD and no Secret Manager configured")

    def build_engine(self) -> Engine:
        if self.DATABASE_URL.startswith("sqlite"):
            logger.info(f"[DB] Using SQLite URL: {self.DATABASE_URL}")
            engine = create_engine(
                self.DATABASE_URL,
                future=True,
                connect_args={"check_same_thread": False},
            )
            # SQLite ignores ON DELETE CASCADE unless asked per connection
            event.listen(engine, "connect", _enable_sqlite_foreign_keys)
            return engine

        logger.info(f"[DB] Connecting to {self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}")
        # pg8000 supports 'timeout' in seconds
        return create_engine(
            self.DATABASE_URL,
            future=True,
            pool_pre_ping=True,
            connect_args={"timeout": 10},
        )

    # -------- SQLAlchemy Session factory --------
    def build_db_session_factory(self) -> Callable[[], Session]:
        if not getattr(self, "_sessionmaker", None):
            engine = self.build_engine()
            Base.metadata.create_all(engine)
            self._sessionmaker = sessionmaker(
                bind=engine,
                autoflush=False,
                expire_on_commit=False,
                future=True,
            )
        return self._sessionmaker


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
