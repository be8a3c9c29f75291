"""Alembic 마이그레이션: ResolutionLog 테이블 추가"""
from alembic import op
import sqlalchemy as sa


revision = "0001_resolution_logs"
down_revision = None


def upgrade():
    """해석 로그 테이블 생성"""
    op.create_table(
        'resolution_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('kind', sa.String(), nullable=False),
        sa.Column('target', sa.String(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('source', sa.String(), nullable=True),
        sa.Column('item_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('elapsed_ms', sa.Float(), nullable=True),
        sa.Column('attempts', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )

    # 인덱스 추가
    op.create_index('ix_resolution_logs_id', 'resolution_logs', ['id'])
    op.create_index('ix_resolution_logs_kind', 'resolution_logs', ['kind'])
    op.create_index('ix_resolution_logs_target', 'resolution_logs', ['target'])
    op.create_index('ix_resolution_logs_status', 'resolution_logs', ['status'])
    op.create_index('ix_resolution_logs_created_at', 'resolution_logs', ['created_at'])
    op.create_index('idx_resolution_kind_created', 'resolution_logs', ['kind', 'created_at'])
    op.create_index('idx_resolution_status_created', 'resolution_logs', ['status', 'created_at'])


def downgrade():
    """테이블 삭제"""
    op.drop_index('idx_resolution_status_created', table_name='resolution_logs')
    op.drop_index('idx_resolution_kind_created', table_name='resolution_logs')
    op.drop_index('ix_resolution_logs_created_at', table_name='resolution_logs')
    op.drop_index('ix_resolution_logs_status', table_name='resolution_logs')
    op.drop_index('ix_resolution_logs_target', table_name='resolution_logs')
    op.drop_index('ix_resolution_logs_kind', table_name='resolution_logs')
    op.drop_index('ix_resolution_logs_id', table_name='resolution_logs')
    op.drop_table('resolution_logs')
