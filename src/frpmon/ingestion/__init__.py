"""Ingestion layer.

Adapters that turn raw inbound frames into validated domain objects
before anything reaches the aggregator.
"""

__all__: list[str] = []
