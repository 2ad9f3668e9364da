"""credulen baseline

Creates every table registered on SQLModel.metadata. Tables that already
exist (databases bootstrapped by init_db) are left untouched.

"""
from typing import Sequence, Union

from alembic import op
from sqlmodel import SQLModel

import app.models  # noqa: F401


revision: str = "0001_credulen_baseline"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    SQLModel.metadata.create_all(op.get_bind(), checkfirst=True)


def downgrade() -> None:
    # Dropping order and payment history is never automated
    pass
