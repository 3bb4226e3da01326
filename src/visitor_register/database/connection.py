from __future__ import annotations

from dataclasses import dataclass

from mysql.connector.constants import ClientFlag


@dataclass(frozen=True)
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    pool_size: int = 10

    @classmethod
    def from_mapping(cls, db_config: dict, *, pool_size: int = 10) -> "DBConfig":
        return cls(
            host=str(db_config.get("host", "localhost")),
            port=int(db_config.get("port", 3306)),
            user=str(db_config.get("user", "root")),
            password=str(db_config.get("password", "")),
            database=str(db_config.get("database", "visitor_register")),
            pool_size=int(db_config.get("pool_size", pool_size)),
        )

    def connect_kwargs(self) -> dict:
        return {
            "host": self.host,
            "port": int(self.port),
            "user": self.user,
            "password": self.password,
            "database": self.database,
            # UPDATE rowcount = matched rows, so re-banning a banned visitor is not a miss.
            "client_flags": [ClientFlag.FOUND_ROWS],
        }

    def describe(self) -> str:
        return f"{self.user}@{self.host}:{self.port}/{self.database}"
