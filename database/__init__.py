from .db import (
    SessionLocal,
    create_tables,
    engine,
    get_db,
    get_database_url,
    UserORM,
    RoleORM,
    PostORM,
    TagORM,
)

__all__ = [
    "SessionLocal",
    "create_tables",
    "engine",
    "get_db",
    "get_database_url",
    "UserORM",
    "RoleORM",
    "PostORM",
    "TagORM",
]
