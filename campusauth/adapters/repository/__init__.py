"""Repository adapters - Database implementations."""

from .postgres import PostgresAccountRepository, run_migrations

__all__ = ["PostgresAccountRepository", "run_migrations"]
