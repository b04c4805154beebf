# ============================================================================
# CLAUDE CONTEXT - MAP FEATURES REPOSITORY
# ============================================================================
# STATUS: Standalone Repository - PostGIS feature cache and artifact feed
# PURPOSE: Atomic replacement and filtered reads of the feature cache, feed reads
# LAST_REVIEWED: Current
# EXPORTS: FeatureCacheRepository, ArtifactFeedRepository
# INTERFACES: PostgreSQLRepository (infrastructure.postgresql)
# PYDANTIC_MODELS: MapFeature (input of replace)
# DEPENDENCIES: psycopg, psycopg.sql, shapely
# SOURCE: PostgreSQL/PostGIS database (configurable schemas)
# SCOPE: Feature cache table and the network tables behind the artifact feed
# VALIDATION: SQL injection prevention via psycopg.sql composition
# PATTERNS: Repository Pattern, single-transaction replace, advisory lock
# ENTRY_POINTS: FeatureCacheRepository().replace(features); .query([GeometryKind.POINT])
# ============================================================================

"""
Map Features Repository - PostGIS Access

Feature cache table::

    feature_id  serial PRIMARY KEY
    feeder_id   integer NOT NULL
    geometry    geometry(Geometry, 4326)
    properties  jsonb

Writes:
- ``replace()`` deletes and re-inserts the whole set inside ONE transaction
  holding ``pg_advisory_xact_lock``; concurrent regenerations queue on the
  lock and a failure anywhere rolls back to the previous set

Reads:
- ``query()`` is a single SELECT, and ``query_snapshot()`` runs one SELECT
  per geometry kind inside one REPEATABLE READ transaction, so under MVCC
  a reader sees the complete old set or the complete new set
- Geometry travels as WKB (``ST_GeomFromWKB`` / ``ST_AsBinary``) and is
  decoded with shapely into GeoJSON geometry dicts
"""

import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import psycopg
import shapely
from psycopg import sql
from psycopg.types.json import Jsonb
from shapely.geometry import shape

from infrastructure.postgresql import PostgreSQLRepository

from .config import MapFeaturesConfig, get_map_config
from .errors import FeatureCacheError
from .models import ArtifactRecord, GeometryKind, MapFeature
from .projection import WGS84_EPSG
from .queries import (
    artifact_feed_query,
    bounds_params,
    feeders_query,
    missing_line_pairs_query,
)

logger = logging.getLogger(__name__)


def decode_geometry(wkb: Any) -> Dict[str, Any]:
    """WKB (bytes, memoryview or hex string) to a GeoJSON geometry dict."""
    if isinstance(wkb, memoryview):
        wkb = wkb.tobytes()
    return json.loads(shapely.to_geojson(shapely.from_wkb(wkb)))


def encode_geometry(geometry: Dict[str, Any]) -> bytes:
    """GeoJSON geometry dict to WKB."""
    return shapely.to_wkb(shape(geometry))


class FeatureCacheRepository(PostgreSQLRepository):
    """
    Feature cache: the generated map features, replaced as a whole.
    """

    def __init__(self, config: Optional[MapFeaturesConfig] = None,
                 connection_string: Optional[str] = None):
        self.config = config or get_map_config()
        super().__init__(connection_string=connection_string, schema_name=self.config.map_schema)
        self.table_name = self.config.features_table
        logger.info(f"FeatureCacheRepository initialized (table: {self.schema_name}.{self.table_name})")

    def _table(self) -> sql.Composed:
        return sql.SQL("{schema}.{table}").format(
            schema=sql.Identifier(self.schema_name),
            table=sql.Identifier(self.table_name)
        )

    # ========================================================================
    # WRITES
    # ========================================================================

    def ensure_table(self, cursor) -> None:
        """Create the cache table when missing (runs inside the caller's transaction)."""
        cursor.execute(sql.SQL("""
            CREATE TABLE IF NOT EXISTS {table} (
                feature_id serial PRIMARY KEY,
                feeder_id integer NOT NULL,
                geometry geometry(Geometry, {srid}),
                properties jsonb NOT NULL DEFAULT '{{}}'::jsonb
            )
        """).format(table=self._table(), srid=sql.Literal(WGS84_EPSG)))

    def replace(self, features: Sequence[MapFeature]) -> int:
        """
        Atomically replace the whole cache with ``features``.

        An empty input is a no-op: the existing cache is left untouched.

        Returns:
            Number of rows written (0 for the no-op)

        Raises:
            FeatureCacheError: If any statement fails; the previous set is kept
        """
        if not features:
            logger.info("Feature cache replace skipped: no features")
            return 0

        rows = [
            (feature.feeder_id, encode_geometry(feature.geometry), Jsonb(feature.properties))
            for feature in features
        ]

        insert = sql.SQL("""
            INSERT INTO {table} (feeder_id, geometry, properties)
            VALUES (%s, ST_SetSRID(ST_GeomFromWKB(%s), {srid}), %s)
        """).format(table=self._table(), srid=sql.Literal(WGS84_EPSG))

        try:
            with self._transaction() as cur:
                cur.execute("SELECT pg_advisory_xact_lock(%s)", (self.config.replace_lock_key,))
                self.ensure_table(cur)
                cur.execute(sql.SQL("DELETE FROM {table}").format(table=self._table()))
                cur.executemany(insert, rows)

        except psycopg.Error as e:
            logger.error(f"Feature cache replace failed, previous set kept: {e}")
            raise FeatureCacheError(f"Feature cache replace failed: {e}") from e

        logger.info(f"Feature cache replaced with {len(rows)} features")
        return len(rows)

    # ========================================================================
    # READS
    # ========================================================================

    def _features_query(self, geometry_kinds: Iterable[GeometryKind],
                        feeder_id: Optional[int]) -> Optional[Tuple[sql.Composed, List[Any]]]:
        postgis_types = sorted({t for kind in geometry_kinds for t in GeometryKind(kind).postgis_types})
        if not postgis_types:
            return None

        where = [sql.SQL("ST_GeometryType(geometry) = ANY(%s)")]
        params: List[Any] = [postgis_types]
        if feeder_id is not None:
            where.append(sql.SQL("feeder_id = %s"))
            params.append(feeder_id)

        query = sql.SQL("""
            SELECT feature_id, feeder_id, ST_AsBinary(geometry) AS geometry, properties
            FROM {table}
            WHERE {where}
            ORDER BY feature_id
        """).format(table=self._table(), where=sql.SQL(" AND ").join(where))
        return query, params

    @staticmethod
    def _to_features(rows: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return [
            {
                "type": "Feature",
                "geometry": decode_geometry(row["geometry"]),
                "properties": row["properties"] or {},
            }
            for row in rows
        ]

    def query(self, geometry_kinds: Iterable[GeometryKind],
              feeder_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Stored features of the given geometry kinds, optionally one feeder only.

        Returns:
            GeoJSON Feature dicts ordered by insertion

        Raises:
            FeatureCacheError: On database failure
        """
        statement = self._features_query(geometry_kinds, feeder_id)
        if statement is None:
            return []

        try:
            with self._get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(f"SET statement_timeout = '{self.config.query_timeout_seconds}s'")
                    cur.execute(*statement)
                    rows = cur.fetchall()

        except psycopg.Error as e:
            logger.error(f"Feature cache query failed: {e}")
            raise FeatureCacheError(f"Feature cache query failed: {e}") from e

        features = self._to_features(rows)
        logger.debug(f"Feature cache query {statement[1][0]} feeder={feeder_id}: {len(features)} rows")
        return features

    def query_snapshot(self, feeder_id: Optional[int] = None) -> Dict[GeometryKind, List[Dict[str, Any]]]:
        """
        Features of every geometry kind read from ONE snapshot.

        All SELECTs share a REPEATABLE READ, READ ONLY transaction, so a
        replace committing in between cannot mix two feature sets.

        Raises:
            FeatureCacheError: On database failure
        """
        snapshot: Dict[GeometryKind, List[Dict[str, Any]]] = {}
        try:
            with self._get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute("SET TRANSACTION ISOLATION LEVEL REPEATABLE READ, READ ONLY")
                    cur.execute(f"SET LOCAL statement_timeout = '{self.config.query_timeout_seconds}s'")
                    for kind in GeometryKind:
                        cur.execute(*self._features_query([kind], feeder_id))
                        snapshot[kind] = self._to_features(cur.fetchall())
                conn.commit()

        except psycopg.Error as e:
            logger.error(f"Feature cache snapshot read failed: {e}")
            raise FeatureCacheError(f"Feature cache query failed: {e}") from e

        logger.debug(
            f"Feature cache snapshot feeder={feeder_id}: "
            + ", ".join(f"{len(v)} {k.value}" for k, v in snapshot.items())
        )
        return snapshot

    def count_by_geometry_kind(self) -> Dict[str, int]:
        """Row count per PostGIS geometry type (health checks)."""
        query = sql.SQL("""
            SELECT ST_GeometryType(geometry) AS geometry_type, COUNT(*) AS count
            FROM {table}
            GROUP BY 1
            ORDER BY 1
        """).format(table=self._table())

        try:
            rows = self._execute_query(query, fetch='all') or []
        except RuntimeError as e:
            raise FeatureCacheError(str(e)) from e
        return {row["geometry_type"]: int(row["count"]) for row in rows}

    def table_exists(self) -> bool:
        return self._table_exists(self.table_name)


class ArtifactFeedRepository(PostgreSQLRepository):
    """
    Read-only access to the electrical network tables.
    """

    def __init__(self, config: Optional[MapFeaturesConfig] = None,
                 connection_string: Optional[str] = None):
        self.config = config or get_map_config()
        super().__init__(connection_string=connection_string, schema_name=self.config.source_schema)

    def _fetch_all(self, query: sql.Composable, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(f"SET statement_timeout = '{self.config.query_timeout_seconds}s'")
                cur.execute(query, params)
                return cur.fetchall()

    def fetch_artifacts(self) -> List[ArtifactRecord]:
        """
        The raw artifact feed, restricted to the valid planar box.

        Raises:
            psycopg.Error: On database failure
            ArtifactContractError: If a row does not have the feed shape
        """
        rows = self._fetch_all(
            artifact_feed_query(self.schema_name),
            bounds_params(self.config.planar_bounds)
        )
        logger.info(f"Fetched {len(rows)} artifact rows from {self.schema_name}")
        return [ArtifactRecord.from_row(row) for row in rows]

    def list_feeders(self) -> List[Dict[str, Any]]:
        """Feeder summaries: id plus the feeder description fields."""
        rows = self._fetch_all(feeders_query(self.schema_name))
        return [{"id": row["id"], **(row.get("description") or {})} for row in rows]

    def missing_line_pairs(self) -> List[Dict[str, Any]]:
        """Adjacent node pairs without a line segment between them."""
        rows = self._fetch_all(missing_line_pairs_query(self.schema_name))
        logger.info(f"Found {len(rows)} missing line pairs")
        return [dict(row) for row in rows]
