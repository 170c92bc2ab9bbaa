"""
Feature modules live under this package.

Each module owns its routes, models and services, and reuses the platform
primitives (audit, storage, DB session, config).
"""
