"""activity source tag and fitness-network ids

Existing rows keep a NULL source until the backfill job tags them.

Revision ID: 20241214_0002
Revises: 20240314_0001
Create Date: 2024-12-14 00:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "20241214_0002"
down_revision: Union[str, None] = "20240314_0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column("activities", sa.Column("source", sa.String(length=15), nullable=True))
    op.add_column("activities", sa.Column("fitness_network_id", sa.BigInteger(), nullable=True))
    op.create_unique_constraint(
        "activities_user_device_health_unique", "activities", ["user_id", "device_health_uuid"]
    )
    op.create_unique_constraint(
        "activities_user_fitness_network_unique", "activities", ["user_id", "fitness_network_id"]
    )


def downgrade() -> None:
    op.drop_constraint("activities_user_fitness_network_unique", "activities", type_="unique")
    op.drop_constraint("activities_user_device_health_unique", "activities", type_="unique")
    op.drop_column("activities", "fitness_network_id")
    op.drop_column("activities", "source")
