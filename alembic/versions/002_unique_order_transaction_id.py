"""Unique gateway payment id per order

Revision ID: 002
Revises: 001
Create Date: 2026-10-19

"""
from alembic import op

# revision identifiers, used by Alembic.
revision = '002'
down_revision = '001'
branch_labels = None
depends_on = None


def upgrade() -> None:
    # 같은 게이트웨이 결제로 여러 주문을 만들 수 없음
    op.create_unique_constraint(
        'uq_orders_transaction_id', 'orders', ['transaction_id']
    )


def downgrade() -> None:
    op.drop_constraint('uq_orders_transaction_id', 'orders', type_='unique')
