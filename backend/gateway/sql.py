from __future__ import annotations

# Table names are validated identifiers from the benchmark config.

CREATE_POINTS_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS {table} (
  id BIGINT,
  lon DOUBLE,
  lat DOUBLE,
  name TEXT
);
"""

CREATE_POLYGONS_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS {table} (
  id BIGINT,
  geom_wkb BLOB,
  min_lon DOUBLE,
  min_lat DOUBLE,
  max_lon DOUBLE,
  max_lat DOUBLE,
  name TEXT,
  category TEXT
);
"""

CREATE_POINTS_INDEX_SQL = "CREATE INDEX IF NOT EXISTS {table}_lonlat_idx ON {table} (lon, lat);"

CREATE_POLYGONS_INDEX_SQL = (
    "CREATE INDEX IF NOT EXISTS {table}_bbox_idx ON {table} (min_lon, min_lat, max_lon, max_lat);"
)

INSERT_POINTS_SQL = "INSERT INTO {table} (id, lon, lat, name) VALUES (?, ?, ?, ?)"

INSERT_POLYGONS_SQL = """
INSERT INTO {table}
  (id, geom_wkb, min_lon, min_lat, max_lon, max_lat, name, category)
VALUES (?, ?, ?, ?, ?, ?, ?, ?)
"""

TABLE_EXISTS_SQL = """
SELECT COUNT(*) FROM information_schema.tables WHERE table_name = ?
"""

POINTS_BBOX_SQL = """
SELECT lat, lon, name
FROM {table}
WHERE lon BETWEEN ? AND ? AND lat BETWEEN ? AND ?
"""

# Coarse bbox-overlap filter; exact intersection is applied after decode.
POLYGONS_BBOX_SQL = """
SELECT geom_wkb, name, category
FROM {table}
WHERE max_lon >= ? AND min_lon <= ? AND max_lat >= ? AND min_lat <= ?
"""
