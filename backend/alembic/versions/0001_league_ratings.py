from alembic import op
import sqlalchemy as sa

revision = "0001_league_ratings"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "league",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("slug", sa.String(), nullable=False, unique=True),
        sa.Column("name", sa.String(), nullable=False),
    )
    op.create_table(
        "league_admin",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("league_id", sa.String(), sa.ForeignKey("league.id"), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.UniqueConstraint("league_id", "email", name="uq_league_admin_league_id_email"),
    )
    op.create_table(
        "season",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("league_id", sa.String(), sa.ForeignKey("league.id"), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_table(
        "participant",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("league_id", sa.String(), sa.ForeignKey("league.id"), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False
        ),
    )
    op.create_table(
        "match",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("league_id", sa.String(), sa.ForeignKey("league.id"), nullable=False),
        sa.Column("season_id", sa.String(), sa.ForeignKey("season.id"), nullable=True),
        sa.Column(
            "player1_id", sa.String(), sa.ForeignKey("participant.id"), nullable=False
        ),
        sa.Column(
            "player2_id", sa.String(), sa.ForeignKey("participant.id"), nullable=False
        ),
        sa.Column("player1_score", sa.Integer(), nullable=True),
        sa.Column("player2_score", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="scheduled"),
        sa.Column("scheduled_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False
        ),
    )
    op.create_index(
        "ix_match_league_status_completed",
        "match",
        ["league_id", "status", "completed_at"],
    )
    op.create_table(
        "player_rating",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column(
            "player_id", sa.String(), sa.ForeignKey("participant.id"), nullable=False
        ),
        sa.Column("league_id", sa.String(), sa.ForeignKey("league.id"), nullable=False),
        sa.Column("current_rating", sa.Float(), nullable=False, server_default="1200"),
        sa.Column("matches_played", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_provisional", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "last_updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=True
        ),
        sa.UniqueConstraint(
            "player_id", "league_id", name="uq_player_rating_player_id_league_id"
        ),
    )


def downgrade():
    op.drop_table("player_rating")
    op.drop_index("ix_match_league_status_completed", table_name="match")
    op.drop_table("match")
    op.drop_table("participant")
    op.drop_table("season")
    op.drop_table("league_admin")
    op.drop_table("league")
