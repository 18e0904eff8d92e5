"""State layer.

The aggregator in this package is the single owner of the live view:
it replaces the current snapshot on each ingest and rebuilds every
derived view from it.
"""
