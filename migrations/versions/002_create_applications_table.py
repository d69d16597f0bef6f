"""Create applications table

Revision ID: 002
Revises: 001
Create Date: 2024-01-01 10:00:00.000000

Status history and documents are embedded JSONB arrays; ``version`` backs
optimistic locking of every write.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '002'
down_revision = '001'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'applications',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('email', sa.Text(), nullable=False),
        sa.Column('destination', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('visa_type', sa.Text(), nullable=False),
        sa.Column('documents', postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column('current_status', sa.Text(), nullable=False),
        sa.Column('status_history', postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'[]'::jsonb"), nullable=False),

        # Agent assignment, set once on accept
        sa.Column('agent_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('agent_name', sa.Text(), nullable=True),
        sa.Column('agent_email', sa.Text(), nullable=True),
        sa.Column('accepted_at', sa.TIMESTAMP(timezone=True), nullable=True),

        sa.Column('offer_letter', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('submitted_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('version', sa.Integer(), server_default='1', nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['agent_id'], ['users.id'], ondelete='SET NULL')
    )

    op.create_index('ix_applications_user_id', 'applications', ['user_id'])
    op.create_index('ix_applications_agent_id', 'applications', ['agent_id'])
    op.create_index('ix_applications_current_status', 'applications', ['current_status'])


def downgrade():
    op.drop_index('ix_applications_current_status', table_name='applications')
    op.drop_index('ix_applications_agent_id', table_name='applications')
    op.drop_index('ix_applications_user_id', table_name='applications')
    op.drop_table('applications')
