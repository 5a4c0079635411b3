"""
Schema checks for the subscribers table and its migration.
"""

import importlib.util
from pathlib import Path
from unittest.mock import patch

import sqlalchemy as sa

from newsletter.models.subscriber import Subscriber

MIGRATION = Path(__file__).resolve().parents[2] / "alembic" / "versions" / "001_create_subscribers_table.py"


def _load_migration():
    spec = importlib.util.spec_from_file_location("create_subscribers_table", MIGRATION)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_model_email_is_unique():
    table = Subscriber.__table__

    assert table.name == "subscribers"
    assert table.c.email.unique is True
    assert table.c.email.nullable is False
    assert table.c.email.type.length == 255


def test_model_defaults_to_verified():
    subscriber = Subscriber(email="a@example.com", verified=True)

    assert subscriber.verified is True
    assert Subscriber.__table__.c.verified.default.arg is True


def test_migration_creates_unique_email_constraint():
    migration = _load_migration()

    with patch.object(migration, "op") as op:
        migration.upgrade()

    args = op.create_table.call_args[0]
    assert args[0] == "subscribers"
    constraints = [a for a in args[1:] if isinstance(a, sa.UniqueConstraint)]
    assert len(constraints) == 1
    assert constraints[0].name == "uq_subscribers_email"


def test_migration_downgrade_drops_table():
    migration = _load_migration()

    with patch.object(migration, "op") as op:
        migration.downgrade()

    op.drop_table.assert_called_once_with("subscribers")
