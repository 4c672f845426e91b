from alembic import op
import sqlalchemy as sa

revision = "0002_season_participants"
down_revision = "0001_league_ratings"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "season_participant",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("season_id", sa.String(), sa.ForeignKey("season.id"), nullable=False),
        sa.Column(
            "participant_id",
            sa.String(),
            sa.ForeignKey("participant.id"),
            nullable=False,
        ),
        sa.UniqueConstraint(
            "season_id",
            "participant_id",
            name="uq_season_participant_season_id_participant_id",
        ),
    )


def downgrade():
    op.drop_table("season_participant")
