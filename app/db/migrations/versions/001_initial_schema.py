"""Initial schema migration

Revision ID: 001
Revises:
Create Date: 2025-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    # Usuarios table
    op.create_table(
        'usuarios',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('nombres', sa.String(100), nullable=False),
        sa.Column('apellidos', sa.String(100), nullable=False),
        sa.Column('cedula', sa.String(20), nullable=True, index=True),
        sa.Column('fecha_nacimiento', sa.Date(), nullable=True),
        sa.Column('direccion', sa.Text(), nullable=True),
        sa.Column('ciudad', sa.String(100), nullable=True),
        sa.Column('provincia', sa.String(100), nullable=True),
        sa.Column('telefono', sa.String(20), nullable=True),
        sa.Column('correo', sa.String(255), nullable=False, unique=True, index=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('rol', sa.Enum('donante', 'admin', name='rolusuario'), nullable=False),
        sa.Column('fecha_registro', sa.DateTime(timezone=True), nullable=False),
        sa.Column('ultimo_login', sa.DateTime(timezone=True), nullable=True),
        sa.Column('activo', sa.Boolean(), nullable=False),
        sa.Column('puntos_acumulados', sa.Integer(), nullable=False),
        sa.Column('nivel_donante', sa.Enum('Bronce', 'Plata', 'Oro', 'Platino', name='niveldonante'), nullable=False),
        *_timestamps(),
    )

    # Configuraciones table
    op.create_table(
        'configuraciones',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('clave', sa.String(100), nullable=False, unique=True, index=True),
        sa.Column('valor', sa.Text(), nullable=False),
        sa.Column('tipo', sa.Enum('texto', 'numero', 'booleano', 'json', name='tipoconfiguracion'), nullable=False),
        sa.Column('descripcion', sa.String(255), nullable=True),
        sa.Column('editable', sa.Boolean(), nullable=False),
        sa.Column('fecha_actualizacion', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )

    # Campanas table
    op.create_table(
        'campanas',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('nombre', sa.String(200), nullable=False),
        sa.Column('descripcion', sa.Text(), nullable=False),
        sa.Column('imagen_url', sa.String(500), nullable=True),
        sa.Column('meta_monto', sa.Numeric(12, 2), nullable=False),
        sa.Column('monto_recaudado', sa.Numeric(12, 2), nullable=False),
        sa.Column('contador_donaciones', sa.Integer(), nullable=False),
        sa.Column('es_emergencia', sa.Boolean(), nullable=False),
        sa.Column('fecha_inicio', sa.Date(), nullable=False),
        sa.Column('fecha_fin', sa.Date(), nullable=True),
        sa.Column('estado', sa.Enum('Activa', 'Finalizada', 'Cancelada', name='estadocampana'), nullable=False, index=True),
        sa.Column('impacto_descripcion', sa.Text(), nullable=True),
        *_timestamps(),
    )

    # Campaign followers
    op.create_table(
        'campana_seguidores',
        sa.Column('id_campana', sa.String(15), sa.ForeignKey('campanas.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('id_usuario', sa.String(15), sa.ForeignKey('usuarios.id', ondelete='CASCADE'), primary_key=True),
    )

    # Metodos de pago table
    op.create_table(
        'metodos_pago',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('id_usuario', sa.String(15), sa.ForeignKey('usuarios.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('tipo', sa.Enum('Tarjeta', 'PLUX', 'PayPal', name='tipometodopago'), nullable=False),
        sa.Column('token_referencia', sa.String(255), nullable=False),
        sa.Column('alias', sa.String(100), nullable=True),
        sa.Column('ultimo_digitos', sa.String(4), nullable=True),
        sa.Column('banco', sa.String(100), nullable=True),
        sa.Column('tipo_cuenta', sa.String(50), nullable=True),
        sa.Column('activo', sa.Boolean(), nullable=False),
        sa.Column('ultima_actualizacion', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )

    # Suscripciones table
    op.create_table(
        'suscripciones',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('id_usuario', sa.String(15), sa.ForeignKey('usuarios.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('id_campana', sa.String(15), sa.ForeignKey('campanas.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('id_metodo_pago', sa.String(15), sa.ForeignKey('metodos_pago.id', ondelete='SET NULL'), nullable=True),
        sa.Column('monto', sa.Numeric(12, 2), nullable=False),
        sa.Column('frecuencia', sa.Enum('Mensual', 'Trimestral', 'Anual', name='frecuenciasuscripcion'), nullable=False),
        sa.Column('estado', sa.Enum('Activa', 'Pausada', 'Cancelada', 'Finalizada', name='estadosuscripcion'), nullable=False, index=True),
        sa.Column('fecha_inicio', sa.Date(), nullable=False),
        sa.Column('fecha_fin', sa.Date(), nullable=True),
        sa.Column('proxima_donacion', sa.Date(), nullable=False, index=True),
        sa.Column('total_donado', sa.Numeric(12, 2), nullable=False),
        sa.Column('total_donaciones', sa.Integer(), nullable=False),
        sa.Column('motivo_cancelacion', sa.Text(), nullable=True),
        sa.Column('fecha_cancelacion', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    # Donaciones table
    op.create_table(
        'donaciones',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('id_usuario', sa.String(15), sa.ForeignKey('usuarios.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('id_campana', sa.String(15), sa.ForeignKey('campanas.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('id_suscripcion', sa.String(15), sa.ForeignKey('suscripciones.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('monto', sa.Numeric(12, 2), nullable=False),
        sa.Column('moneda', sa.String(3), nullable=False),
        sa.Column('fecha_donacion', sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column('metodo_pago', sa.Enum('Tarjeta', 'PLUX', 'PayPal', name='metodopagodonacion'), nullable=False),
        sa.Column('referencia_pago', sa.String(255), nullable=True),
        sa.Column('estado', sa.Enum('Pendiente', 'Completada', 'Fallida', 'Reembolsada', name='estadodonacion'), nullable=False, index=True),
        sa.Column('es_anonima', sa.Boolean(), nullable=False),
        sa.Column('requiere_factura', sa.Boolean(), nullable=False),
        sa.Column('correo_comprobante', sa.String(255), nullable=True),
        sa.Column('acepto_terminos', sa.Boolean(), nullable=False),
        sa.Column('acepto_noticias', sa.Boolean(), nullable=False),
        sa.Column('puntos_otorgados', sa.Integer(), nullable=False),
        sa.Column('ip_donante', sa.String(45), nullable=True),
        sa.Column('notas', sa.Text(), nullable=True),
        *_timestamps(),
    )

    # Comprobantes table
    op.create_table(
        'comprobantes',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('id_donacion', sa.String(15), sa.ForeignKey('donaciones.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('codigo_unico', sa.String(50), nullable=False, unique=True, index=True),
        sa.Column('fecha_emision', sa.DateTime(timezone=True), nullable=False),
        sa.Column('url_pdf', sa.String(255), nullable=True),
        sa.Column('enviado_email', sa.Boolean(), nullable=False),
        sa.Column('fecha_envio', sa.DateTime(timezone=True), nullable=True),
        sa.Column('correo_envio', sa.String(255), nullable=True),
        *_timestamps(),
    )

    # Facturas table
    op.create_table(
        'facturas',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('id_donacion', sa.String(15), sa.ForeignKey('donaciones.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('numero_factura', sa.String(50), nullable=False, unique=True, index=True),
        sa.Column('fecha_emision', sa.DateTime(timezone=True), nullable=False),
        sa.Column('subtotal', sa.Numeric(12, 2), nullable=False),
        sa.Column('impuestos', sa.Numeric(12, 2), nullable=False),
        sa.Column('total', sa.Numeric(12, 2), nullable=False),
        sa.Column('url_pdf', sa.String(255), nullable=True),
        sa.Column('enviada_email', sa.Boolean(), nullable=False),
        sa.Column('fecha_envio', sa.DateTime(timezone=True), nullable=True),
        sa.Column('enviada_sat', sa.Boolean(), nullable=False),
        sa.Column('estado', sa.Enum('Emitida', 'Cancelada', name='estadofactura'), nullable=False),
        *_timestamps(),
    )

    # Datos fiscales table
    op.create_table(
        'datos_fiscales',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('id_usuario', sa.String(15), sa.ForeignKey('usuarios.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('rfc', sa.String(20), nullable=False),
        sa.Column('razon_social', sa.String(200), nullable=False),
        sa.Column('direccion_fiscal', sa.Text(), nullable=False),
        sa.Column('correo_facturacion', sa.String(255), nullable=False),
        sa.Column('requiere_cfdi', sa.Boolean(), nullable=False),
        sa.Column('ultima_actualizacion', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('id_usuario', 'rfc', name='uq_datos_fiscales_usuario_rfc'),
    )

    # Recompensas table
    op.create_table(
        'recompensas',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('nombre', sa.String(100), nullable=False),
        sa.Column('descripcion', sa.Text(), nullable=False),
        sa.Column('puntos_requeridos', sa.Integer(), nullable=False),
        sa.Column('tipo', sa.Enum('Insignia', 'Certificado', 'Experiencia', 'Descuento', name='tiporecompensa'), nullable=False),
        sa.Column('imagen_url', sa.String(500), nullable=True),
        sa.Column('activa', sa.Boolean(), nullable=False),
        sa.Column('cantidad_disponible', sa.Integer(), nullable=True),
        *_timestamps(),
    )

    # Usuarios - recompensas table
    op.create_table(
        'usuarios_recompensas',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('id_usuario', sa.String(15), sa.ForeignKey('usuarios.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('id_recompensa', sa.String(15), sa.ForeignKey('recompensas.id', ondelete='RESTRICT'), nullable=False, index=True),
        sa.Column('codigo_unico', sa.String(50), nullable=False, unique=True),
        sa.Column('fecha_obtencion', sa.DateTime(timezone=True), nullable=False),
        sa.Column('puntos_usados', sa.Integer(), nullable=False),
        sa.Column('estado', sa.Enum('Pendiente', 'Entregada', 'Canjeada', 'Expirada', name='estadousuariorecompensa'), nullable=False),
        sa.Column('fecha_entrega', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notas', sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('id_usuario', 'id_recompensa', name='uq_usuarios_recompensas_usuario_recompensa'),
    )

    # Notificaciones table
    op.create_table(
        'notificaciones',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('id_usuario', sa.String(15), sa.ForeignKey('usuarios.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('tipo', sa.Enum('Donacion', 'Suscripcion', 'Campana', 'Sistema', name='tiponotificacion'), nullable=False),
        sa.Column('titulo', sa.String(200), nullable=False),
        sa.Column('mensaje', sa.Text(), nullable=False),
        sa.Column('leida', sa.Boolean(), nullable=False),
        sa.Column('fecha_lectura', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    # Estadisticas mensuales table
    op.create_table(
        'estadisticas_mensuales',
        sa.Column('ano', sa.Integer(), primary_key=True),
        sa.Column('mes', sa.Integer(), primary_key=True),
        sa.Column('total_donaciones', sa.Numeric(14, 2), nullable=False),
        sa.Column('contador_donaciones', sa.Integer(), nullable=False),
        sa.Column('contador_donantes_unicos', sa.Integer(), nullable=False),
        sa.Column('contador_nuevos_donantes', sa.Integer(), nullable=False),
        sa.Column('contador_suscripciones_nuevas', sa.Integer(), nullable=False),
        sa.Column('contador_suscripciones_canceladas', sa.Integer(), nullable=False),
        sa.Column('campana_principal', sa.String(15), nullable=True),
        sa.Column('monto_promedio', sa.Numeric(12, 2), nullable=False),
        *_timestamps(),
    )


def downgrade() -> None:
    # Drop tables in reverse order
    op.drop_table('estadisticas_mensuales')
    op.drop_table('notificaciones')
    op.drop_table('usuarios_recompensas')
    op.drop_table('recompensas')
    op.drop_table('datos_fiscales')
    op.drop_table('facturas')
    op.drop_table('comprobantes')
    op.drop_table('donaciones')
    op.drop_table('suscripciones')
    op.drop_table('metodos_pago')
    op.drop_table('campana_seguidores')
    op.drop_table('campanas')
    op.drop_table('configuraciones')
    op.drop_table('usuarios')

    # Drop enum types
    for enum_name in (
        'estadousuariorecompensa', 'tiporecompensa', 'estadofactura', 'estadodonacion',
        'metodopagodonacion', 'estadosuscripcion', 'frecuenciasuscripcion', 'tipometodopago',
        'estadocampana', 'tipoconfiguracion', 'niveldonante', 'rolusuario', 'tiponotificacion',
    ):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
