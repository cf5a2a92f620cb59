"""Core shared logic for series, indicators, signals, and models.

This package contains pure business logic with no I/O dependencies
(no network access). The live application layer (app/) feeds it
klines and consumes its indicator snapshots and signals.
"""
