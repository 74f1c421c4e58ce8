"""
Application Settings - Pydantic Settings for configuration management.

Supports environment variables and .env file loading. Every backend keeps its
endpoint and credentials in its own settings class so a run can target one
store without touching the others.
"""

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import BeforeValidator, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


def normalize_to_lowercase(v: str) -> str:
    """Normalize string to lowercase."""
    if isinstance(v, str):
        return v.lower()
    return v


class BenchmarkSettings(BaseSettings):
    """Workload shape and measurement settings."""

    model_config = SettingsConfigDict(env_prefix="BENCH_")

    backend: Annotated[str, BeforeValidator(normalize_to_lowercase)] = Field(
        default="memory", description="Backend selected for the run"
    )
    max_concurrency: int = Field(
        default=12, ge=1, description="Maximum chunks dispatched concurrently"
    )
    num_inserts: list[int] = Field(
        default=[10, 100, 1000], description="Workload sizes (small/medium/large)"
    )

    # Measurement
    warmup_iterations: int = Field(default=1, ge=0, description="Untimed iterations per scenario")
    iterations: int = Field(default=5, ge=1, description="Timed iterations per scenario")
    track_allocations: bool = Field(
        default=True, description="Sample allocated bytes in one extra iteration with tracemalloc"
    )

    # Output
    output_dir: str = Field(default="./benchmark_results", description="Result JSON directory")
    save_raw_results: bool = Field(default=True, description="Write one JSON file per scenario")


class MongoSettings(BaseSettings):
    """MongoDB connection settings."""

    model_config = SettingsConfigDict(env_prefix="MONGO_")

    host: str = Field(default="127.0.0.1", description="MongoDB host")
    port: int = Field(default=27017, description="MongoDB port")
    username: str = Field(default="root", description="MongoDB username")
    password: SecretStr = Field(default=SecretStr("example"), description="MongoDB password")
    auth_source: str = Field(default="admin", description="Authentication database")
    database: str = Field(default="benchmark", description="Database name")
    collection: str = Field(default="keyvaluecollection", description="Collection name")


class ElasticsearchSettings(BaseSettings):
    """Elasticsearch connection settings."""

    model_config = SettingsConfigDict(env_prefix="ELASTIC_")

    url: str = Field(default="http://127.0.0.1:9200", description="Elasticsearch node URL")
    username: str | None = Field(default=None, description="Basic auth username")
    password: SecretStr | None = Field(default=None, description="Basic auth password")
    index: str = Field(default="ch-bmk", description="Index name")
    request_timeout: float = Field(default=30.0, description="Per-request timeout in seconds")


class ScyllaSettings(BaseSettings):
    """ScyllaDB (CQL) connection settings."""

    model_config = SettingsConfigDict(env_prefix="SCYLLA_")

    contact_points: list[str] = Field(default=["127.0.0.1"], description="Cluster contact points")
    port: int = Field(default=9042, description="Native transport port")
    username: str | None = Field(default=None, description="CQL username")
    password: SecretStr | None = Field(default=None, description="CQL password")
    keyspace: str = Field(default="benchmarkkeyspace", description="Keyspace name")
    replication_factor: int = Field(default=1, ge=1, description="SimpleStrategy replication factor")
    consistency: Literal["ONE", "LOCAL_ONE", "QUORUM", "LOCAL_QUORUM"] = Field(
        default="LOCAL_ONE", description="Consistency level for reads and writes"
    )
    request_timeout: float = Field(default=10.0, description="Per-request timeout in seconds")


class ClickHouseSettings(BaseSettings):
    """ClickHouse HTTP interface settings."""

    model_config = SettingsConfigDict(env_prefix="CLICKHOUSE_")

    host: str = Field(default="localhost", description="ClickHouse host")
    port: int = Field(default=8123, description="HTTP interface port")
    username: str = Field(default="default", description="ClickHouse username")
    password: SecretStr = Field(default=SecretStr(""), description="ClickHouse password")
    database: str = Field(default="benchmark", description="Database name")
    table: str = Field(default="testdata", description="Table name")


class MSSQLSettings(BaseSettings):
    """SQL Server (ODBC) connection settings."""

    model_config = SettingsConfigDict(env_prefix="MSSQL_")

    driver: str = Field(default="ODBC Driver 18 for SQL Server", description="ODBC driver name")
    server: str = Field(default="localhost", description="Server host[,port]")
    username: str = Field(default="sa", description="SQL login")
    password: SecretStr = Field(default=SecretStr("Password$4"), description="SQL password")
    database: str = Field(default="benchmark", description="Database name")
    table: str = Field(default="testdata", description="Table name")
    trust_server_certificate: bool = Field(default=True, description="Skip certificate validation")
    encrypt: bool = Field(default=False, description="Encrypt the connection")

    def connection_string(self, database: str | None = None) -> str:
        """Build the ODBC connection string, optionally for another database."""
        parts = [
            f"DRIVER={{{self.driver}}}",
            f"SERVER={self.server}",
            f"DATABASE={database or self.database}",
            f"UID={self.username}",
            f"PWD={self.password.get_secret_value()}",
            f"Encrypt={'yes' if self.encrypt else 'no'}",
            f"TrustServerCertificate={'yes' if self.trust_server_certificate else 'no'}",
        ]
        return ";".join(parts) + ";"


class Neo4jSettings(BaseSettings):
    """Neo4j database connection settings."""

    model_config = SettingsConfigDict(env_prefix="NEO4J_")

    uri: str = Field(default="bolt://localhost:7687", description="Neo4j connection URI")
    username: str = Field(default="neo4j", description="Neo4j username")
    password: SecretStr = Field(default=SecretStr("password"), description="Neo4j password")
    database: str = Field(default="neo4j", description="Neo4j database name")
    max_connection_pool_size: int = Field(default=50, description="Connection pool size")
    label: str = Field(default="TestData", description="Node label for benchmark records")


class ObservabilitySettings(BaseSettings):
    """Logging settings."""

    model_config = SettingsConfigDict(env_prefix="OBSERVABILITY_")

    log_format: Literal["json", "console"] = Field(
        default="console", description="Log format (json for CI, console for local runs)"
    )


class Settings(BaseSettings):
    """Main application settings aggregating all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )

    # Sub-settings
    benchmark: BenchmarkSettings = Field(default_factory=BenchmarkSettings)
    mongo: MongoSettings = Field(default_factory=MongoSettings)
    elasticsearch: ElasticsearchSettings = Field(default_factory=ElasticsearchSettings)
    scylla: ScyllaSettings = Field(default_factory=ScyllaSettings)
    clickhouse: ClickHouseSettings = Field(default_factory=ClickHouseSettings)
    mssql: MSSQLSettings = Field(default_factory=MSSQLSettings)
    neo4j: Neo4jSettings = Field(default_factory=Neo4jSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
