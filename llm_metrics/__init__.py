"""
LLM Metrics Service: Completion Metrics Ingestion and Query API

Records per-request performance and cost metrics for (simulated) LLM
completions into a Prometheus registry and a TimescaleDB table, and
answers aggregate summary and cost-breakdown queries over the stored data.
"""

__version__ = "1.0.0"
