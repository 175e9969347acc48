"""Alembic environment configuration for RWA Ledger."""

import sys
from pathlib import Path
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

# Ensure src/ is on sys.path for editable installs
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from rwa_ledger.common.models import Base

# Import all models so they register with Base.metadata
import rwa_ledger.users.models  # noqa: F401
import rwa_ledger.assets.models  # noqa: F401
import rwa_ledger.ledger.models  # noqa: F401
import rwa_ledger.orders.models  # noqa: F401
import rwa_ledger.transfers.models  # noqa: F401
import rwa_ledger.valuation.models  # noqa: F401
import rwa_ledger.notifications.models  # noqa: F401

config = context.config

# Allow CLI override: alembic -x sqlalchemy.url=... upgrade head
cmd_url = context.get_x_argument(as_dictionary=True).get("sqlalchemy.url")
if cmd_url:
    config.set_main_option("sqlalchemy.url", cmd_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        render_as_batch=url is not None and url.startswith("sqlite"),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        # SQLite cannot ALTER constraints in place; batch mode rebuilds the table.
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
