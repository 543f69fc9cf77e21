"""Create resource, edge, identity and module_schema tables

Revision ID: 4c1d2e3f5a6b
Revises:
Create Date: 2026-10-18 12:00:00.000000

Resources are the generic content records of the site. Edges connect
resources, identities hold login credentials and module_schema records which
schema version of each module has been installed.

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c1d2e3f5a6b'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'rsc',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=80), nullable=True),
        sa.Column('category', sa.String(length=80), nullable=False),
        sa.Column('title', sa.Text(), nullable=True),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column('body', sa.Text(), nullable=True),
        sa.Column('page_path', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('language', sa.JSON(), nullable=True),
        sa.Column('is_published', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_protected', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('seo_noindex', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('content_group_id', sa.Integer(), nullable=True),
        sa.Column('creator_id', sa.Integer(), nullable=True),
        sa.Column('modifier_id', sa.Integer(), nullable=True),
        sa.Column('created', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('modified', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('props', sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(['content_group_id'], ['rsc.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['creator_id'], ['rsc.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['modifier_id'], ['rsc.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sa.UniqueConstraint('page_path'),
    )
    op.create_index('ix_rsc_content_group_created_modified', 'rsc', ['content_group_id', 'created', 'modified'])
    op.create_index('ix_rsc_category', 'rsc', ['category'])

    op.create_table(
        'edge',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('subject_id', sa.Integer(), nullable=False),
        sa.Column('predicate', sa.String(length=80), nullable=False),
        sa.Column('object_id', sa.Integer(), nullable=False),
        sa.Column('created', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['subject_id'], ['rsc.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['object_id'], ['rsc.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('subject_id', 'predicate', 'object_id', name='uq_edge_triple'),
    )
    op.create_index('ix_edge_object', 'edge', ['object_id', 'predicate'])

    op.create_table(
        'identity',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('rsc_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('key', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.Text(), nullable=True),
        sa.Column('created', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('modified', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['rsc_id'], ['rsc.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('type', 'key', name='uq_identity_type_key'),
    )
    op.create_index('ix_identity_rsc', 'identity', ['rsc_id'])

    op.create_table(
        'module_schema',
        sa.Column('module', sa.String(length=128), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('installed_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('module'),
    )


def downgrade():
    op.drop_table('module_schema')
    op.drop_index('ix_identity_rsc', table_name='identity')
    op.drop_table('identity')
    op.drop_index('ix_edge_object', table_name='edge')
    op.drop_table('edge')
    op.drop_index('ix_rsc_category', table_name='rsc')
    op.drop_index('ix_rsc_content_group_created_modified', table_name='rsc')
    op.drop_table('rsc')
