from functools import lru_cache
from typing import Literal, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Store backend selection: "mongo" (document) or "sql" (relational)
    task_store_backend: Literal["mongo", "sql"] = Field(
        "mongo", validation_alias="TASK_STORE_BACKEND"
    )

    # HTTP listener
    host: str = Field("0.0.0.0", validation_alias="HOST")
    port: int = Field(3000, validation_alias="PORT")
    environment: str = Field(
        "development", validation_alias=AliasChoices("APP_ENV", "ENVIRONMENT")
    )
    log_level: Optional[str] = Field(
        None, validation_alias=AliasChoices("APP_LOG_LEVEL", "LOG_LEVEL")
    )

    # Document store
    mongo_uri: str = Field(
        "mongodb://localhost:27017/tasksdb",
        validation_alias=AliasChoices("DATABASE_URL", "MONGO_URI"),
    )
    mongo_db: Optional[str] = Field(None, validation_alias="MONGO_DB")

    # Relational store; SQL_DATABASE_URL wins over the discrete credentials
    sql_database_url: Optional[str] = Field(None, validation_alias="SQL_DATABASE_URL")
    db_host: str = Field("localhost", validation_alias="DB_HOST")
    db_user: str = Field("postgres", validation_alias="DB_USER")
    db_password: str = Field("", validation_alias="DB_PASSWORD")
    db_name: str = Field("tasksdb", validation_alias="DB_NAME")
    db_port: int = Field(5432, validation_alias="DB_PORT")

    # Credentials injected by the managed platform on its private network
    private_network: bool = Field(False, validation_alias="PRIVATE_NETWORK")
    pg_host: Optional[str] = Field(None, validation_alias="PGHOST")
    pg_user: Optional[str] = Field(None, validation_alias="PGUSER")
    pg_password: Optional[str] = Field(None, validation_alias="PGPASSWORD")
    pg_database: Optional[str] = Field(None, validation_alias="PGDATABASE")
    pg_port: Optional[int] = Field(None, validation_alias="PGPORT")

    # Boot-time connection retry
    db_connect_max_attempts: int = Field(5, ge=1, validation_alias="DB_CONNECT_MAX_ATTEMPTS")
    db_connect_retry_delay_sec: float = Field(
        5.0, ge=0, validation_alias="DB_CONNECT_RETRY_DELAY_SEC"
    )

    def sql_credentials(self) -> dict:
        """Resolve relational credentials for the active network mode."""

        if not self.private_network:
            return {
                "host": self.db_host,
                "user": self.db_user,
                "password": self.db_password,
                "database": self.db_name,
                "port": self.db_port,
            }
        return {
            "host": self.pg_host or self.db_host,
            "user": self.pg_user or self.db_user,
            "password": self.pg_password if self.pg_password is not None else self.db_password,
            "database": self.pg_database or self.db_name,
            "port": self.pg_port or self.db_port,
        }

    @property
    def use_tls(self) -> bool:
        return self.private_network


@lru_cache()
def get_settings() -> Settings:
    return Settings()
