"""
Query gateways.

A gateway runs one timed bbox query for one arm and reports rows, client time and
server time (or a typed failure). Today we ship a local DuckDB gateway and an
HTTP RPC gateway for a PostgREST/PostGIS backend.
"""
