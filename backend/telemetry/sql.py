from __future__ import annotations

CREATE_ARM_RUNS_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS arm_runs (
  ts_ms BIGINT,
  run_id TEXT,
  side TEXT,
  position INTEGER,
  status TEXT,
  client_ms DOUBLE,
  server_ms DOUBLE,
  row_count BIGINT,
  view_zoom DOUBLE,
  bbox_min_lon DOUBLE,
  bbox_min_lat DOUBLE,
  bbox_max_lon DOUBLE,
  bbox_max_lat DOUBLE,
  won BOOLEAN
);
"""

SUMMARY_SQL_TEMPLATE = """
SELECT
  side,
  COUNT(*) AS n,
  SUM(CASE WHEN status <> 'ok' THEN 1 ELSE 0 END) AS failures,
  AVG(server_ms) AS avg_server_ms,
  quantile_cont(server_ms, 0.50) AS p50_server_ms,
  quantile_cont(server_ms, 0.95) AS p95_server_ms,
  AVG(client_ms) AS avg_client_ms,
  SUM(CASE WHEN won THEN 1 ELSE 0 END) AS wins,
  AVG(CASE WHEN position = 0 THEN server_ms END) AS avg_server_ms_first,
  AVG(CASE WHEN position = 1 THEN server_ms END) AS avg_server_ms_second
FROM arm_runs
{where_sql}
GROUP BY side
ORDER BY side
"""

INSERT_ARM_RUNS_SQL = """
INSERT INTO arm_runs
  (ts_ms, run_id, side, position, status, client_ms, server_ms, row_count, view_zoom,
   bbox_min_lon, bbox_min_lat, bbox_max_lon, bbox_max_lat, won)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""
