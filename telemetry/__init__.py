"""Telemetry ingestion and aggregation backend for trading bots."""
