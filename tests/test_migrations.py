from pathlib import Path

import sqlalchemy as sa
from alembic import command
from alembic.config import Config

from storefront.database import Base
import storefront.models  # noqa: F401

ROOT = Path(__file__).resolve().parents[1]


def alembic_config(url: str) -> Config:
    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "alembic"))
    cfg.attributes["database_url"] = url
    return cfg


def test_upgrade_creates_model_tables(tmp_path):
    url = f"sqlite:///{tmp_path / 'migrated.db'}"
    command.upgrade(alembic_config(url), "head")

    inspector = sa.inspect(sa.create_engine(url))
    tables = set(inspector.get_table_names())
    assert set(Base.metadata.tables) <= tables

    for name, table in Base.metadata.tables.items():
        migrated = {col["name"] for col in inspector.get_columns(name)}
        assert migrated == set(table.columns.keys()), name


def test_downgrade_drops_everything(tmp_path):
    url = f"sqlite:///{tmp_path / 'migrated.db'}"
    cfg = alembic_config(url)
    command.upgrade(cfg, "head")
    command.downgrade(cfg, "base")

    tables = set(sa.inspect(sa.create_engine(url)).get_table_names())
    assert tables <= {"alembic_version"}
