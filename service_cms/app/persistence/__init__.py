from .postgres import PostgresDatabase

__all__ = ["PostgresDatabase"]
