"""Live market-data application layer (network clients and services)."""
