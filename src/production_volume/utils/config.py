# src/production_volume/utils/config.py
"""
Environment-driven settings for the production volume data layer.

Every source database lives on the same SQL Server instance by default; each
one can be renamed through its own DB_NAME_* variable.
"""

import os
import socket
from pathlib import Path
from dotenv import load_dotenv

# Load .env from project root
BASE_DIR = Path(__file__).resolve().parents[3]
load_dotenv(BASE_DIR / ".env")


class Config:
    DB_DRIVER = os.getenv("DB_DRIVER", "{ODBC Driver 17 for SQL Server}")
    DB_TRUSTED_CONNECTION = os.getenv("DB_TRUSTED_CONNECTION", "yes")
    DB_UID = os.getenv("DB_UID", "").strip()
    DB_PWD = os.getenv("DB_PWD", "")
    DB_SCHEMA = os.getenv("DB_SCHEMA", "dbo").strip()

    DB_SERVER_PROD = os.getenv("DB_SERVER_PROD", "").strip()
    DB_SERVER_LOCAL = os.getenv("DB_SERVER_LOCAL", "localhost").strip()

    # One database per production source
    DB_NAME_BRAZING = os.getenv("DB_NAME_BRAZING", "Brazing")
    DB_NAME_USUI = os.getenv("DB_NAME_USUI", "USUI")
    DB_NAME_SPDB_EXP = os.getenv("DB_NAME_SPDB_EXP", "SPdb_Exp")
    DB_NAME_SPDB_EXP2 = os.getenv("DB_NAME_SPDB_EXP2", "SPdb_Exp2")
    DB_NAME_SPDB_DOM = os.getenv("DB_NAME_SPDB_DOM", "SPdb_Dom")

    # The cache table lives next to the Brazing data
    CACHE_DATABASE = os.getenv("CACHE_DATABASE", DB_NAME_BRAZING)

    QUERY_TIMEOUT_SECONDS = int(os.getenv("QUERY_TIMEOUT_SECONDS", "300"))
    POOL_SIZE = int(os.getenv("POOL_SIZE", "5"))
    AGGREGATION_WORKERS = int(os.getenv("AGGREGATION_WORKERS", "4"))

    def _can_connect_to(self, server: str, timeout: float = 1.5) -> bool:
        """Fast TCP check on port 1433 (SQL Server default)"""
        if not server:
            return False
        host = server.split("\\")[0].split(",")[0].split(":")[0]
        try:
            with socket.create_connection((host, 1433), timeout=timeout):
                return True
        except OSError:
            return False

    @property
    def DB_SERVER(self) -> str:
        """Auto-pick the reachable server"""
        if self.DB_SERVER_PROD and self._can_connect_to(self.DB_SERVER_PROD):
            return self.DB_SERVER_PROD
        return self.DB_SERVER_LOCAL

    def database_name(self, key: str) -> str:
        """Physical database name for a source key such as ``SPDB_EXP``."""
        return getattr(self, f"DB_NAME_{key}")

    def odbc_connection_string(self, database: str, server: str | None = None) -> str:
        conn_str = (
            f"DRIVER={self.DB_DRIVER};"
            f"SERVER={server or self.DB_SERVER};"
            f"DATABASE={database};"
        )
        if self.DB_UID:
            conn_str += f"UID={self.DB_UID};PWD={self.DB_PWD};"
        else:
            conn_str += f"Trusted_Connection={self.DB_TRUSTED_CONNECTION};"
        return conn_str

    def __repr__(self):
        return f"<Config cache_db={self.CACHE_DATABASE} schema={self.DB_SCHEMA}>"


# Singleton
config = Config()
