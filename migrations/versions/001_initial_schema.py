"""Initial schema with all tables

Revision ID: 001
Revises: 
Create Date: 2026-10-18 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create utente table
    op.create_table(
        'utente',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('nome', sa.String(length=255), nullable=True),
        sa.Column('is_superuser', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )

    # Create organizzazione table
    op.create_table(
        'organizzazione',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('nome', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('nome')
    )
    op.create_index(op.f('ix_organizzazione_id'), 'organizzazione', ['id'], unique=False)

    # Create organizzazioni_utente table
    op.create_table(
        'organizzazioni_utente',
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('organizzazione_id', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(length=50), nullable=False, server_default='user'),
        sa.ForeignKeyConstraint(['user_id'], ['utente.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['organizzazione_id'], ['organizzazione.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('user_id', 'organizzazione_id')
    )

    # Create commessa table
    op.create_table(
        'commessa',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('nome', sa.String(length=255), nullable=False),
        sa.Column('organizzazione_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['organizzazione_id'], ['organizzazione.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('organizzazione_id', 'nome', name='uq_commessa_organizzazione_nome')
    )
    op.create_index(op.f('ix_commessa_id'), 'commessa', ['id'], unique=False)
    op.create_index(op.f('ix_commessa_organizzazione_id'), 'commessa', ['organizzazione_id'], unique=False)
    op.create_index(op.f('ix_commessa_created_at'), 'commessa', ['created_at'], unique=False)

    # Create file_origine table (principal G-code FK added after gcode exists)
    op.create_table(
        'file_origine',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('nome_file', sa.String(length=1000), nullable=False),
        sa.Column('commessa_id', sa.Integer(), nullable=False),
        sa.Column('descrizione', sa.Text(), nullable=True),
        sa.Column('user_id', sa.String(length=64), nullable=True),
        sa.Column('tipo', sa.String(length=10), nullable=False),
        sa.Column('data_caricamento', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('gcode_principale_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['commessa_id'], ['commessa.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('nome_file')
    )
    op.create_index(op.f('ix_file_origine_id'), 'file_origine', ['id'], unique=False)
    op.create_index(op.f('ix_file_origine_commessa_id'), 'file_origine', ['commessa_id'], unique=False)
    op.create_index(op.f('ix_file_origine_data_caricamento'), 'file_origine', ['data_caricamento'], unique=False)

    # Create gcode table
    op.create_table(
        'gcode',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('file_origine_id', sa.Integer(), nullable=False),
        sa.Column('nome_file', sa.String(length=1000), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=True),
        sa.Column('data_caricamento', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('peso_grammi', sa.Float(), nullable=True),
        sa.Column('tempo_stampa_min', sa.Integer(), nullable=True),
        sa.Column('materiale', sa.String(length=100), nullable=True),
        sa.Column('stampante', sa.String(length=255), nullable=True),
        sa.Column('data_analisi', sa.DateTime(), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['file_origine_id'], ['file_origine.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('nome_file')
    )
    op.create_index(op.f('ix_gcode_id'), 'gcode', ['id'], unique=False)
    op.create_index(op.f('ix_gcode_file_origine_id'), 'gcode', ['file_origine_id'], unique=False)
    op.create_index(op.f('ix_gcode_data_caricamento'), 'gcode', ['data_caricamento'], unique=False)

    op.create_foreign_key(
        'fk_file_origine_gcode_principale',
        'file_origine', 'gcode',
        ['gcode_principale_id'], ['id'],
        ondelete='SET NULL'
    )

    # Create stampante table
    op.create_table(
        'stampante',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('nome', sa.String(length=255), nullable=False),
        sa.Column('modello', sa.String(length=255), nullable=True),
        sa.Column('seriale', sa.String(length=255), nullable=True),
        sa.Column('attiva', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('data_acquisto', sa.Date(), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('organizzazione_id', sa.Integer(), nullable=True),
        sa.Column('tipo_sistema', sa.String(length=20), nullable=True),
        sa.Column('endpoint_api', sa.String(length=500), nullable=True),
        sa.Column('api_key_encrypted', sa.Text(), nullable=True),
        sa.Column('ha_entity_id', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['organizzazione_id'], ['organizzazione.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('seriale')
    )
    op.create_index(op.f('ix_stampante_id'), 'stampante', ['id'], unique=False)
    op.create_index(op.f('ix_stampante_organizzazione_id'), 'stampante', ['organizzazione_id'], unique=False)

    # Create ordine table
    op.create_table(
        'ordine',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('gcode_id', sa.Integer(), nullable=False),
        sa.Column('commessa_id', sa.Integer(), nullable=True),
        sa.Column('organizzazione_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=True),
        sa.Column('quantita', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('stato', sa.String(length=20), nullable=False, server_default='processamento'),
        sa.Column('consegna_richiesta', sa.Date(), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('data_ordine', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('data_consegna', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['gcode_id'], ['gcode.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['commessa_id'], ['commessa.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['organizzazione_id'], ['organizzazione.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('quantita > 0', name='ck_ordine_quantita_positiva')
    )
    op.create_index(op.f('ix_ordine_id'), 'ordine', ['id'], unique=False)
    op.create_index(op.f('ix_ordine_gcode_id'), 'ordine', ['gcode_id'], unique=False)
    op.create_index(op.f('ix_ordine_commessa_id'), 'ordine', ['commessa_id'], unique=False)
    op.create_index(op.f('ix_ordine_organizzazione_id'), 'ordine', ['organizzazione_id'], unique=False)
    op.create_index(op.f('ix_ordine_user_id'), 'ordine', ['user_id'], unique=False)
    op.create_index(op.f('ix_ordine_stato'), 'ordine', ['stato'], unique=False)
    op.create_index(op.f('ix_ordine_data_ordine'), 'ordine', ['data_ordine'], unique=False)

    # Create coda_stampa table
    op.create_table(
        'coda_stampa',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('ordine_id', sa.Integer(), nullable=False),
        sa.Column('stampante_id', sa.Integer(), nullable=False),
        sa.Column('posizione', sa.Integer(), nullable=False),
        sa.Column('stato', sa.String(length=20), nullable=False, server_default='in_queue'),
        sa.Column('data_inizio', sa.DateTime(), nullable=True),
        sa.Column('data_fine', sa.DateTime(), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['ordine_id'], ['ordine.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['stampante_id'], ['stampante.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_coda_stampa_id'), 'coda_stampa', ['id'], unique=False)
    op.create_index(op.f('ix_coda_stampa_ordine_id'), 'coda_stampa', ['ordine_id'], unique=False)
    op.create_index(op.f('ix_coda_stampa_stampante_id'), 'coda_stampa', ['stampante_id'], unique=False)
    op.create_index(op.f('ix_coda_stampa_stato'), 'coda_stampa', ['stato'], unique=False)

    # At most one running print per printer
    op.create_index(
        'uq_coda_stampa_printing_per_stampante',
        'coda_stampa',
        ['stampante_id'],
        unique=True,
        postgresql_where=sa.text("stato = 'printing'")
    )
    # Unique positions among waiting and printing entries
    op.create_index(
        'uq_coda_stampa_posizione_attiva',
        'coda_stampa',
        ['stampante_id', 'posizione'],
        unique=True,
        postgresql_where=sa.text("stato IN ('in_queue', 'printing')")
    )

    # Create home_assistant_config table
    op.create_table(
        'home_assistant_config',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('base_url', sa.String(length=500), nullable=False),
        sa.Column('access_token_encrypted', sa.Text(), nullable=False),
        sa.Column('entity_prefix', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_home_assistant_config_id'), 'home_assistant_config', ['id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_home_assistant_config_id'), table_name='home_assistant_config')
    op.drop_table('home_assistant_config')

    op.drop_index('uq_coda_stampa_posizione_attiva', table_name='coda_stampa')
    op.drop_index('uq_coda_stampa_printing_per_stampante', table_name='coda_stampa')
    op.drop_table('coda_stampa')

    op.drop_table('ordine')
    op.drop_table('stampante')

    op.drop_constraint('fk_file_origine_gcode_principale', 'file_origine', type_='foreignkey')
    op.drop_table('gcode')
    op.drop_table('file_origine')
    op.drop_table('commessa')
    op.drop_table('organizzazioni_utente')
    op.drop_table('organizzazione')
    op.drop_table('utente')
