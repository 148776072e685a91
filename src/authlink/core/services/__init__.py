"""Core services.

Import services from their modules; this package stays import-light because
the entity modules depend on ``core.services.database``.
"""
