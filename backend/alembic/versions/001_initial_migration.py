"""Initial migration: create clubboard, sessionhistory, member tables

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Board document: one row per club, version is the compare-and-swap token
    op.create_table(
        "clubboard",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("courts", sa.JSON(), nullable=False),
        sa.Column("blocks", sa.JSON(), nullable=False),
        sa.Column("waitlist", sa.JSON(), nullable=False),
        sa.Column("recently_cleared", sa.JSON(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_clubboard_name", "clubboard", ["name"], unique=True)

    # Sessions that left a court
    op.create_table(
        "sessionhistory",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("board_id", sa.Integer(), nullable=False),
        sa.Column("session_id", sa.String(), nullable=False),
        sa.Column("court_number", sa.Integer(), nullable=False),
        sa.Column("players", sa.JSON(), nullable=False),
        sa.Column("guests", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("clear_reason", sa.String(), nullable=True),
        sa.Column("cleared_at", sa.DateTime(), nullable=True),
        sa.Column("recorded_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["board_id"],
            ["clubboard.id"],
        ),
    )
    op.create_index("ix_sessionhistory_board_id", "sessionhistory", ["board_id"])
    op.create_index("ix_sessionhistory_session_id", "sessionhistory", ["session_id"])
    op.create_index("ix_sessionhistory_court_number", "sessionhistory", ["court_number"])

    # Member directory
    op.create_table(
        "member",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("member_id", sa.String(), nullable=True),
        sa.Column("club_number", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_member_name", "member", ["name"])
    op.create_index("ix_member_member_id", "member", ["member_id"], unique=True)
    op.create_index("ix_member_club_number", "member", ["club_number"])


def downgrade() -> None:
    op.drop_index("ix_member_club_number", table_name="member")
    op.drop_index("ix_member_member_id", table_name="member")
    op.drop_index("ix_member_name", table_name="member")
    op.drop_table("member")
    op.drop_index("ix_sessionhistory_court_number", table_name="sessionhistory")
    op.drop_index("ix_sessionhistory_session_id", table_name="sessionhistory")
    op.drop_index("ix_sessionhistory_board_id", table_name="sessionhistory")
    op.drop_table("sessionhistory")
    op.drop_index("ix_clubboard_name", table_name="clubboard")
    op.drop_table("clubboard")
