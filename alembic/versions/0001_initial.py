"""Initial migration

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create extensions
    op.execute('CREATE EXTENSION IF NOT EXISTS pgcrypto;')

    # Create users table
    op.create_table('users',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False, server_default=sa.text('gen_random_uuid()')),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('username', sa.String(length=48), nullable=False),
        sa.Column('password_hash', sa.Text(), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=True),
        sa.Column('last_name', sa.String(length=100), nullable=True),
        sa.Column('avatar', sa.String(length=512), nullable=True),
        sa.Column('role', postgresql.ENUM('user', 'admin', name='user_role'), nullable=False, server_default='user'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sa.UniqueConstraint('username')
    )

    # Create plans table
    plans_table = op.create_table('plans',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('max_members', sa.Integer(), nullable=False),
        sa.Column('max_competitions', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('max_changes_week', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('monthly_price', sa.Numeric(precision=10, scale=2), nullable=False, server_default='0'),
        sa.Column('features', sa.JSON(), nullable=False, server_default=sa.text("'{}'::json")),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('max_members >= 1', name='chk_plan_max_members'),
        sa.CheckConstraint('monthly_price >= 0', name='chk_plan_price_nonneg')
    )

    # Create competitions table
    op.create_table('competitions',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False, server_default=sa.text('gen_random_uuid()')),
        sa.Column('external_id', sa.String(length=64), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('sport', sa.String(length=64), nullable=False, server_default='football'),
        sa.Column('country', sa.String(length=64), nullable=True),
        sa.Column('logo_url', sa.String(length=512), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('external_id')
    )

    # Create teams table
    op.create_table('teams',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False, server_default=sa.text('gen_random_uuid()')),
        sa.Column('external_id', sa.String(length=64), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('logo_url', sa.String(length=512), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('external_id')
    )

    # Create matches table
    op.create_table('matches',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False, server_default=sa.text('gen_random_uuid()')),
        sa.Column('external_id', sa.String(length=128), nullable=True),
        sa.Column('competition_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('home_team_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('away_team_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('start_time', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('status', postgresql.ENUM('upcoming', 'live', 'finished', 'postponed', 'cancelled', name='match_status'), nullable=False, server_default='upcoming'),
        sa.Column('home_score', sa.Integer(), nullable=True),
        sa.Column('away_score', sa.Integer(), nullable=True),
        sa.Column('round', sa.String(length=32), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['competition_id'], ['competitions.id']),
        sa.ForeignKeyConstraint(['home_team_id'], ['teams.id']),
        sa.ForeignKeyConstraint(['away_team_id'], ['teams.id'])
    )

    # Create leagues table
    op.create_table('leagues',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False, server_default=sa.text('gen_random_uuid()')),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('owner_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('plan_id', sa.String(length=32), nullable=False, server_default='free'),
        sa.Column('invite_code', sa.String(length=16), nullable=False),
        sa.Column('is_private', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('current_competition_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('competition_changed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('invite_code'),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id']),
        sa.ForeignKeyConstraint(['plan_id'], ['plans.id']),
        sa.ForeignKeyConstraint(['current_competition_id'], ['competitions.id'])
    )

    # Create league_members table
    op.create_table('league_members',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False, server_default=sa.text('gen_random_uuid()')),
        sa.Column('league_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('role', postgresql.ENUM('owner', 'admin', 'member', name='member_role'), nullable=False, server_default='member'),
        sa.Column('points', sa.Integer(), nullable=False, server_default='1000'),
        sa.Column('joined_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('league_id', 'user_id', name='uq_league_member'),
        sa.ForeignKeyConstraint(['league_id'], ['leagues.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE')
    )

    # Create group_bets table
    op.create_table('group_bets',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False, server_default=sa.text('gen_random_uuid()')),
        sa.Column('league_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('match_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('created_by_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('status', postgresql.ENUM('open', 'closed', 'settled', name='group_bet_status'), nullable=False, server_default='open'),
        sa.Column('closes_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('settled_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('league_id', 'match_id', name='uq_group_bet_league_match'),
        sa.ForeignKeyConstraint(['league_id'], ['leagues.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['match_id'], ['matches.id']),
        sa.ForeignKeyConstraint(['created_by_id'], ['users.id'], ondelete='CASCADE')
    )

    # Create bets table
    op.create_table('bets',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False, server_default=sa.text('gen_random_uuid()')),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('match_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('league_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('group_bet_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('prediction_type', sa.String(length=32), nullable=False),
        sa.Column('prediction_value', sa.Text(), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('status', postgresql.ENUM('pending', 'won', 'lost', 'void', name='bet_status'), nullable=False, server_default='pending'),
        sa.Column('potential_win', sa.Integer(), nullable=True),
        sa.Column('actual_win', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()')),
        sa.Column('settled_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('group_bet_id', 'user_id', name='uq_bet_group_bet_user'),
        sa.CheckConstraint('amount > 0', name='chk_bet_amount_positive'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['match_id'], ['matches.id']),
        sa.ForeignKeyConstraint(['league_id'], ['leagues.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['group_bet_id'], ['group_bets.id'], ondelete='SET NULL')
    )

    # Create league_wallets table
    op.create_table('league_wallets',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False, server_default=sa.text('gen_random_uuid()')),
        sa.Column('league_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('balance', sa.Numeric(precision=10, scale=2), nullable=False, server_default='0'),
        sa.Column('next_payment_date', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('is_frozen', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('league_id'),
        sa.ForeignKeyConstraint(['league_id'], ['leagues.id'], ondelete='CASCADE')
    )

    # Create contributions table
    op.create_table('contributions',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False, server_default=sa.text('gen_random_uuid()')),
        sa.Column('wallet_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('payment_method', sa.String(length=32), nullable=False, server_default='mock'),
        sa.Column('payment_id', sa.String(length=128), nullable=False),
        sa.Column('status', postgresql.ENUM('pending', 'completed', 'failed', name='contribution_status'), nullable=False, server_default='completed'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('payment_id'),
        sa.CheckConstraint('amount > 0', name='chk_contribution_amount_positive'),
        sa.ForeignKeyConstraint(['wallet_id'], ['league_wallets.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE')
    )

    # Create audit_logs table
    op.create_table('audit_logs',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False, server_default=sa.text('gen_random_uuid()')),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('actor', sa.String(length=128), nullable=True),
        sa.Column('action', sa.String(length=128), nullable=False),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id')
    )

    # Create indexes
    op.create_index('idx_matches_competition_start', 'matches', ['competition_id', 'start_time'])
    op.create_index('idx_league_members_user', 'league_members', ['user_id'])
    op.create_index('idx_bets_user_league_created', 'bets', ['user_id', 'league_id', 'created_at'])
    op.create_index('idx_bets_group_bet', 'bets', ['group_bet_id'])
    op.create_index('idx_group_bets_status_closes', 'group_bets', ['status', 'closes_at'])
    op.create_index('idx_league_wallets_next_payment', 'league_wallets', ['next_payment_date'])
    op.create_index('idx_contributions_wallet_created', 'contributions', ['wallet_id', 'created_at'])
    op.create_index('idx_audit_logs_action_created', 'audit_logs', ['action', 'created_at'])

    # Seed subscription plans (-1 means unlimited)
    op.bulk_insert(plans_table, [
        {'id': 'free', 'name': 'Free', 'max_members': 4, 'max_competitions': 1,
         'max_changes_week': 1, 'monthly_price': 0, 'features': {}},
        {'id': 'champion', 'name': 'Champion', 'max_members': 10, 'max_competitions': -1,
         'max_changes_week': -1, 'monthly_price': 5.99,
         'features': {'unlimitedCompetitions': True, 'unlimitedChanges': True}},
        {'id': 'mvp', 'name': 'MVP', 'max_members': 30, 'max_competitions': -1,
         'max_changes_week': -1, 'monthly_price': 11.99,
         'features': {'unlimitedCompetitions': True, 'unlimitedChanges': True, 'prioritySupport': True}},
    ])


def downgrade() -> None:
    # Drop indexes
    op.drop_index('idx_audit_logs_action_created', table_name='audit_logs')
    op.drop_index('idx_contributions_wallet_created', table_name='contributions')
    op.drop_index('idx_league_wallets_next_payment', table_name='league_wallets')
    op.drop_index('idx_group_bets_status_closes', table_name='group_bets')
    op.drop_index('idx_bets_group_bet', table_name='bets')
    op.drop_index('idx_bets_user_league_created', table_name='bets')
    op.drop_index('idx_league_members_user', table_name='league_members')
    op.drop_index('idx_matches_competition_start', table_name='matches')

    # Drop tables
    op.drop_table('audit_logs')
    op.drop_table('contributions')
    op.drop_table('league_wallets')
    op.drop_table('bets')
    op.drop_table('group_bets')
    op.drop_table('league_members')
    op.drop_table('leagues')
    op.drop_table('matches')
    op.drop_table('teams')
    op.drop_table('competitions')
    op.drop_table('plans')
    op.drop_table('users')

    # Drop enums
    op.execute('DROP TYPE IF EXISTS contribution_status')
    op.execute('DROP TYPE IF EXISTS bet_status')
    op.execute('DROP TYPE IF EXISTS group_bet_status')
    op.execute('DROP TYPE IF EXISTS member_role')
    op.execute('DROP TYPE IF EXISTS match_status')
    op.execute('DROP TYPE IF EXISTS user_role')
