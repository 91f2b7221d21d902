"""notification templates

Revision ID: 3b1f6c2a9d47
Revises:
Create Date: 2026-01-05 09:00:00.000000+00:00

"""
from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '3b1f6c2a9d47'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            server_default=sa.text('CURRENT_TIMESTAMP'),
            nullable=False,
            comment='Timestamp of record creation',
        ),
        sa.Column(
            'updated_at',
            sa.DateTime(timezone=True),
            server_default=sa.text('CURRENT_TIMESTAMP'),
            nullable=False,
            comment='Timestamp of last update',
        ),
    ]


def upgrade() -> None:
    """Upgrade database schema."""
    op.create_table(
        'notification_categories',
        sa.Column('code', sa.String(length=120), nullable=False),
        sa.Column('display_name', sa.String(length=200), nullable=False),
        sa.Column('channel', sa.String(length=20), nullable=False),
        sa.Column(
            'group',
            sa.String(length=50),
            nullable=True,
            comment='Presenter routing group (billing, account, ...)',
        ),
        sa.PrimaryKeyConstraint('code', name=op.f('pk_notification_categories')),
    )

    op.create_table(
        'notification_templates',
        sa.Column(
            'id',
            sa.Integer(),
            autoincrement=True,
            nullable=False,
            comment='Auto-incrementing integer primary key',
        ),
        sa.Column('tenant_id', sa.Integer(), nullable=False, comment='Owning tenant identifier'),
        sa.Column(
            'slug',
            sa.String(length=120),
            nullable=False,
            comment="Tenant-unique identifier (e.g., 'invoice-overdue')",
        ),
        sa.Column('name', sa.String(length=200), nullable=False, comment='Human-readable name'),
        sa.Column('kind', sa.String(length=20), nullable=False, comment='renderable, partial or layout'),
        sa.Column(
            'channel',
            sa.String(length=20),
            nullable=True,
            comment='email, webhook or sms; null for partials and layouts',
        ),
        sa.Column('subject_template', sa.Text(), nullable=True, comment='Inline Jinja2 subject line'),
        sa.Column('status', sa.String(length=20), nullable=False, comment='active or archived'),
        sa.Column(
            'current_version',
            sa.Integer(),
            nullable=True,
            comment='Published version number used for rendering',
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_notification_templates')),
        sa.UniqueConstraint('tenant_id', 'slug', name='uq_notification_templates_tenant_slug'),
    )
    op.create_index(
        op.f('ix_notification_templates_tenant_id'),
        'notification_templates',
        ['tenant_id'],
        unique=False,
    )
    op.create_index(
        'ix_notification_templates_tenant_kind',
        'notification_templates',
        ['tenant_id', 'kind'],
        unique=False,
    )

    op.create_table(
        'notification_template_versions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('template_id', sa.Integer(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, comment='0 = draft, >= 1 published'),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            'published_by',
            sa.String(length=255),
            nullable=True,
            comment='Identity of the publisher; null for drafts',
        ),
        sa.ForeignKeyConstraint(
            ['template_id'],
            ['notification_templates.id'],
            name=op.f('fk_notification_template_versions_template_id_notification_templates'),
            ondelete='RESTRICT',
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_notification_template_versions')),
        sa.UniqueConstraint(
            'template_id',
            'version',
            name='uq_notification_template_versions_template_version',
        ),
    )
    op.create_index(
        op.f('ix_notification_template_versions_template_id'),
        'notification_template_versions',
        ['template_id'],
        unique=False,
    )

    op.create_table(
        'notification_category_mappings',
        sa.Column(
            'id',
            sa.Integer(),
            autoincrement=True,
            nullable=False,
            comment='Auto-incrementing integer primary key',
        ),
        sa.Column('tenant_id', sa.Integer(), nullable=False, comment='Owning tenant identifier'),
        sa.Column('category_code', sa.String(length=120), nullable=False),
        sa.Column('template_id', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ['category_code'],
            ['notification_categories.code'],
            name=op.f('fk_notification_category_mappings_category_code_notification_categories'),
            ondelete='RESTRICT',
        ),
        sa.ForeignKeyConstraint(
            ['template_id'],
            ['notification_templates.id'],
            name=op.f('fk_notification_category_mappings_template_id_notification_templates'),
            ondelete='RESTRICT',
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_notification_category_mappings')),
        sa.UniqueConstraint(
            'tenant_id',
            'category_code',
            name='uq_notification_category_mappings_tenant_category',
        ),
    )
    op.create_index(
        op.f('ix_notification_category_mappings_tenant_id'),
        'notification_category_mappings',
        ['tenant_id'],
        unique=False,
    )

    op.create_table(
        'notification_template_variables',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('template_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column(
            'path',
            sa.String(length=255),
            nullable=False,
            comment="Dotted path in the render context (e.g., 'invoice.amount')",
        ),
        sa.Column('declared_type', sa.String(length=50), nullable=False),
        sa.Column('required', sa.Boolean(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(
            ['template_id'],
            ['notification_templates.id'],
            name=op.f('fk_notification_template_variables_template_id_notification_templates'),
            ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_notification_template_variables')),
    )
    op.create_index(
        op.f('ix_notification_template_variables_template_id'),
        'notification_template_variables',
        ['template_id'],
        unique=False,
    )


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index(
        op.f('ix_notification_template_variables_template_id'),
        table_name='notification_template_variables',
    )
    op.drop_table('notification_template_variables')
    op.drop_index(
        op.f('ix_notification_category_mappings_tenant_id'),
        table_name='notification_category_mappings',
    )
    op.drop_table('notification_category_mappings')
    op.drop_index(
        op.f('ix_notification_template_versions_template_id'),
        table_name='notification_template_versions',
    )
    op.drop_table('notification_template_versions')
    op.drop_index('ix_notification_templates_tenant_kind', table_name='notification_templates')
    op.drop_index(op.f('ix_notification_templates_tenant_id'), table_name='notification_templates')
    op.drop_table('notification_templates')
    op.drop_table('notification_categories')
