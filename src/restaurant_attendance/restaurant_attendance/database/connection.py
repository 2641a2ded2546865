from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import mysql.connector


@dataclass(frozen=True)
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    connect_timeout: int = 10

    @classmethod
    def from_dict(cls, values: dict) -> "DBConfig":
        return cls(
            host=str(values.get("host", "localhost")),
            port=int(values.get("port", 3306)),
            user=str(values["user"]),
            password=str(values.get("password") or ""),
            database=str(values["database"]),
            connect_timeout=int(values.get("connect_timeout", 10)),
        )

    def describe(self) -> str:
        """Connection target without the password, for logs."""
        return f"{self.user}@{self.host}:{self.port}/{self.database}"


class DatabaseConnection:
    """Process-wide MySQL connection factory.

    Every repository call opens its own short-lived connection. Session
    changes for one employee are serialized by named locks, never by a
    long-running transaction.
    """

    _instance: Optional["DatabaseConnection"] = None

    def __init__(self, config: DBConfig):
        self.config = config

    @classmethod
    def get_instance(cls, config: DBConfig) -> "DatabaseConnection":
        if cls._instance is None or cls._instance.config != config:
            cls._instance = cls(config)
        return cls._instance

    def connect(self, *, with_database: bool = True):
        params = {
            "host": self.config.host,
            "port": self.config.port,
            "user": self.config.user,
            "password": self.config.password,
            "charset": "utf8mb4",
            "connection_timeout": self.config.connect_timeout,
            "autocommit": False,
        }
        if with_database:
            params["database"] = self.config.database
        return mysql.connector.connect(**params)
