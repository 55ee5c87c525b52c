# alembic/env.py
import asyncio
import os
import sys
from logging.config import fileConfig

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, PROJECT_ROOT)

load_dotenv(os.path.join(PROJECT_ROOT, ".env"))

# --- Model Imports ---
from counselor_api.data.database import Base, async_database_url  # noqa: E402
from counselor_api.models.database_models.counsel_message import CounselMessage  # noqa: E402,F401
from counselor_api.models.database_models.counsel_session import CounselSession  # noqa: E402,F401
from counselor_api.models.database_models.counselor_assignment import CounselorAssignment  # noqa: E402,F401
from counselor_api.models.database_models.coverage_grant import CounselorCoverageGrant  # noqa: E402,F401
from counselor_api.models.database_models.session_note import SessionNote  # noqa: E402,F401
from counselor_api.models.database_models.session_share import SessionShare, SessionShareAccess  # noqa: E402,F401
from counselor_api.models.database_models.user import User  # noqa: E402,F401
from counselor_api.models.database_models.user_subscription import UserSubscription  # noqa: E402,F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    context.configure(
        url=async_database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        render_as_batch=connection.dialect.name == "sqlite",
    )
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    connectable = create_async_engine(async_database_url, poolclass=pool.NullPool)
    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
