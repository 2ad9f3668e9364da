"""webinar payments

Adds the webinar and webinar_payment tables to databases created at the baseline.

"""
from typing import Sequence, Union

from alembic import op

from app.models import Webinar, WebinarPayment


revision: str = "0002_webinar_payments"
down_revision: Union[str, None] = "0001_credulen_baseline"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    bind = op.get_bind()
    Webinar.__table__.create(bind, checkfirst=True)
    WebinarPayment.__table__.create(bind, checkfirst=True)


def downgrade() -> None:
    # Payment history is kept; drop the tables by hand if needed
    pass
