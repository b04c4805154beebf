# ============================================================================
# CLAUDE CONTEXT - MAP FEATURES SQL
# ============================================================================
# STATUS: SQL Templates - artifact feed, feeder list, missing line pairs
# PURPOSE: Read-side SQL over the electrical network tables
# LAST_REVIEWED: Current
# EXPORTS: artifact_feed_query, feeders_query, missing_line_pairs_query
# DEPENDENCIES: psycopg.sql
# PATTERNS: psycopg.sql composition, named bound parameters for the planar box
# ENTRY_POINTS: cursor.execute(artifact_feed_query(schema), bounds_params(bounds))
# ============================================================================

"""
Network SQL

The network tables keep their source names (alimentador = feeder,
tramo = line segment, poste = pole, equipo = equipment,
transformador_dx = distribution transformer). Every query exposes the
artifact feed shape: ``artifact_kind, id, x, y, x2, y2, description`` where
``x`` is the northing, ``y`` the easting and ``description.feeder_id`` the
owning feeder.

Schema names are injected with ``sql.Identifier``; the planar box is bound
as named parameters (``%(min_northing)s`` ...).
"""

from typing import Any, Dict

from psycopg import sql

from .config import PlanarBounds

_POINT_FILTER = """
    {table}.x IS NOT NULL
    AND {table}.y IS NOT NULL
    AND {table}.x BETWEEN %(min_northing)s AND %(max_northing)s
    AND {table}.y BETWEEN %(min_easting)s AND %(max_easting)s"""

_LINE_FILTER = """
    tramo.x1 IS NOT NULL
    AND tramo.y1 IS NOT NULL
    AND tramo.x2 IS NOT NULL
    AND tramo.y2 IS NOT NULL
    AND tramo.x1 BETWEEN %(min_northing)s AND %(max_northing)s
    AND tramo.y1 BETWEEN %(min_easting)s AND %(max_easting)s
    AND tramo.x2 BETWEEN %(min_northing)s AND %(max_northing)s
    AND tramo.y2 BETWEEN %(min_easting)s AND %(max_easting)s"""

_FEEDER_SELECT = """
SELECT DISTINCT ON (alimentador.alimentador_id)
    'Feeder' AS artifact_kind,
    alimentador.alimentador_id AS id,
    NULL AS x,
    NULL AS y,
    NULL AS x2,
    NULL AS y2,
    jsonb_build_object(
        'artifact', 'Feeder',
        'company_id', empresa.empresa_id_origen,
        'substation_id', ssee_poder.subestacion_id,
        'feeder_id', alimentador.alimentador_id,
        'feeder_name', alimentador.alimentador_nombre,
        'power_transformer_id', transformador_dx.transformador_dx_id_origen,
        'mv_bus_id', barra_mt.barra_mt_id_origen,
        'design_capacity', alimentador.cap_diseno,
        'nominal_voltage', alimentador.tension,
        'r1', alimentador.r1_coci,
        'x1', alimentador.x1_coci,
        'r0', alimentador.r0_coci,
        'x0', alimentador.x0_coci,
        'min_demand_kw', alimentador.dda_min_kw,
        'max_demand_kw', alimentador.dda_max_kw
    ) AS description
FROM {schema}.alimentador
JOIN {schema}.ssee_poder
    ON ssee_poder.subestacion_id = alimentador.subestacion_id
    AND ssee_poder.empresa_id = alimentador.subestacion_empresa_id
JOIN {schema}.subestacion
    ON ssee_poder.subestacion_id = subestacion.subestacion_id
JOIN {schema}.empresa
    ON alimentador.empresa_id = empresa.empresa_id
JOIN {schema}.transformador_dx
    ON alimentador.alimentador_id = transformador_dx.alimentador_id
LEFT JOIN {schema}.barra_mt
    ON alimentador.barra_mt_id = barra_mt.barra_mt_id"""

_ARTIFACT_FEED = """
SELECT
    'Transformer' AS artifact_kind,
    transformador_dx.transformador_dx_id AS id,
    transformador_dx.x AS x,
    transformador_dx.y AS y,
    NULL AS x2,
    NULL AS y2,
    jsonb_build_object(
        'artifact', 'Transformer',
        'company_id', empresa.empresa_id_origen,
        'substation_id', subestacion.subestacion_id_origen,
        'feeder_id', alimentador.alimentador_id,
        'transformer_id', transformador_dx.transformador_dx_id_origen,
        'rated_capacity_kva', transformador_dx.cap_nom,
        'primary_voltage_kv', transformador_dx.tension_primaria,
        'secondary_voltage_kv', transformador_dx.tension_secundaria,
        'reactance_percent', transformador_dx.z,
        'connection_type', tipo_cnx.tipo_cnx,
        'high_voltage_node_id', nodo_alta_tension.nodo_id_origen,
        'low_voltage_node_id', nodo_baja_tension.nodo_id_origen,
        'min_day_demand', transformador_dx.demanda_minima_dia,
        'min_night_demand', transformador_dx.demanda_minima_noche,
        'max_demand', transformador_dx.demanda_maxima
    ) AS description
FROM {schema}.alimentador
JOIN {schema}.empresa
    ON alimentador.empresa_id = empresa.empresa_id
JOIN {schema}.ssee_poder
    ON empresa.empresa_id = ssee_poder.empresa_id
    AND alimentador.subestacion_id = ssee_poder.subestacion_id
JOIN {schema}.subestacion
    ON alimentador.subestacion_id = subestacion.subestacion_id
JOIN {schema}.transformador_dx
    ON alimentador.alimentador_id = transformador_dx.alimentador_id
JOIN {schema}.tipo_cnx
    ON transformador_dx.tipo_cnx_id = tipo_cnx.tipo_cnx_id
JOIN {schema}.barra_mt
    ON alimentador.barra_mt_id = barra_mt.barra_mt_id
JOIN {schema}.nodo AS nodo_alta_tension
    ON transformador_dx.nodo_id_alta_tension = nodo_alta_tension.nodo_id
JOIN {schema}.nodo AS nodo_baja_tension
    ON transformador_dx.nodo_id_baja_tension = nodo_baja_tension.nodo_id
WHERE""" + _POINT_FILTER.replace("{table}", "transformador_dx") + """
UNION ALL
SELECT
    'Line' AS artifact_kind,
    tramo.tramo_id AS id,
    tramo.x1 AS x,
    tramo.y1 AS y,
    tramo.x2 AS x2,
    tramo.y2 AS y2,
    jsonb_build_object(
        'artifact', 'Line',
        'company_id', empresa.empresa_id_origen,
        'feeder_id', alimentador.alimentador_id,
        'segment_id', tramo.tramo_id_origen,
        'voltage_kv', tramo.tension,
        'length_m', tramo.largo,
        'phase_count', tramo.numero_fases,
        'arrangement', tipo_dispositivo.tipo_dispositivo_name,
        'conductor_type', catalogo_conductor.catalogo_conductor_id_origen
    ) AS description
FROM {schema}.alimentador
JOIN {schema}.empresa
    ON alimentador.empresa_id = empresa.empresa_id
JOIN {schema}.tramo
    ON alimentador.alimentador_id = tramo.alimentador_id
JOIN {schema}.tipo_dispositivo
    ON tramo.tipo_dispositivo_id = tipo_dispositivo.tipo_dispositivo_id
JOIN {schema}.catalogo_conductor
    ON tramo.catalogo_conductor_id = catalogo_conductor.catalogo_conductor_id
WHERE""" + _LINE_FILTER + """
UNION ALL
SELECT
    'Pole' AS artifact_kind,
    poste.poste_id AS id,
    poste.x AS x,
    poste.y AS y,
    NULL AS x2,
    NULL AS y2,
    jsonb_build_object(
        'artifact', 'Pole',
        'company_id', empresa.empresa_id_origen,
        'feeder_id', alimentador.alimentador_id,
        'commune', comuna.comuna_nombre,
        'pole_id', poste.poste_id_origen,
        'voltage', tipo_tension.tipo_tension_nombre,
        'height', poste.altura_poste,
        'arrangement', poste.disposicion_postacion
    ) AS description
FROM {schema}.alimentador
JOIN {schema}.empresa
    ON alimentador.empresa_id = empresa.empresa_id
JOIN {schema}.nodo
    ON alimentador.alimentador_id = nodo.alimentador_id
JOIN {schema}.poste
    ON nodo.poste_id = poste.poste_id
JOIN {schema}.comuna
    ON poste.comuna_id = comuna.comuna_id
JOIN {schema}.tipo_tension
    ON poste.tipo_tension_id = tipo_tension.tipo_tension_id
WHERE""" + _POINT_FILTER.replace("{table}", "poste") + """
UNION ALL
SELECT
    'Equipment' AS artifact_kind,
    equipo.equipo_id AS id,
    equipo.x AS x,
    equipo.y AS y,
    NULL AS x2,
    NULL AS y2,
    jsonb_build_object(
        'artifact', 'Equipment',
        'company_id', empresa.empresa_id_origen,
        'feeder_id', alimentador.alimentador_id,
        'equipment_id', equipo.equipo_id_origen,
        'equipment_name', equipo.equipo_nombre,
        'node', nodo.nodo_id_origen,
        'state', equipo.estado,
        'nominal_voltage', equipo.tension_nom,
        'equipment_type', tipo_equipo.tipo_equipo_nombre,
        'ownership', propiedad.propiedad_descripcion,
        'location', equipo.ubicacion_prot,
        'design_capacity', equipo.cap_diseno,
        'segment', tramo.tramo_id_origen
    ) AS description
FROM {schema}.alimentador
JOIN {schema}.empresa
    ON alimentador.empresa_id = empresa.empresa_id
JOIN {schema}.equipo
    ON alimentador.alimentador_id = equipo.alimentador_id
JOIN {schema}.nodo
    ON equipo.nodo_id = nodo.nodo_id
JOIN {schema}.tipo_equipo
    ON equipo.tipo_equipo_id = tipo_equipo.tipo_equipo_id
JOIN {schema}.propiedad
    ON equipo.propiedad_id = propiedad.propiedad_id
JOIN {schema}.tramo
    ON equipo.tramo_id = tramo.tramo_id
WHERE""" + _POINT_FILTER.replace("{table}", "equipo") + """
UNION ALL
(""" + _FEEDER_SELECT + """
)"""

_MISSING_LINE_PAIRS = """
SELECT
    tramo.empresa_id AS company_id,
    cercanos.nodo_cercano_id AS near_node_id,
    cercanos.nodo_base_id AS base_node_id,
    tramo.catalogo_conductor_id AS conductor_catalog_id,
    tramo.alimentador_id AS feeder_id,
    tramo.fases_id AS phases_id,
    tramo.zona_id AS zone_id,
    tramo.tipo_dispositivo_id AS device_type_id,
    CASE WHEN cercanos.distancia <= 0 THEN 1 ELSE cercanos.distancia END AS length_m,
    tramo.numero_fases AS phase_count,
    tramo.tension AS voltage,
    tramo.datum,
    tramo.propiedad_id AS ownership_id
FROM {schema}.tramo
JOIN {schema}.cercanos
    ON tramo.nodo_uno_id = cercanos.nodo_base_id
    AND cercanos.cercania = 1
LEFT JOIN {schema}.tramo AS tramo_existente
    ON tramo_existente.nodo_uno_id = cercanos.nodo_cercano_id
    AND tramo_existente.nodo_dos_id = cercanos.nodo_base_id
WHERE tramo_existente.tramo_id IS NULL"""


def bounds_params(bounds: PlanarBounds) -> Dict[str, Any]:
    return {
        "min_northing": bounds.min_northing,
        "max_northing": bounds.max_northing,
        "min_easting": bounds.min_easting,
        "max_easting": bounds.max_easting,
    }


def artifact_feed_query(schema: str) -> sql.Composed:
    """Every placeable artifact inside the planar box plus one row per feeder."""
    return sql.SQL(_ARTIFACT_FEED).format(schema=sql.Identifier(schema))


def feeders_query(schema: str) -> sql.Composed:
    """Feeder summary rows, one per feeder id."""
    return sql.SQL(_FEEDER_SELECT + "\nORDER BY alimentador.alimentador_id").format(
        schema=sql.Identifier(schema)
    )


def missing_line_pairs_query(schema: str) -> sql.Composed:
    """Adjacent node pairs with no line segment between them."""
    return sql.SQL(_MISSING_LINE_PAIRS).format(schema=sql.Identifier(schema))
