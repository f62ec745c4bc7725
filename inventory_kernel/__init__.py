"""
inventory_kernel -- shared foundations for the inventory ingestion system.

Provides structured logging, the typed exception hierarchy, the injectable
clock, the ValidationError DTO, and the SQLAlchemy base/engine/models that
back the persistent stock store.

Architecture:
    inventory_kernel/ is the lowest layer. It never imports from
    inventory_ingestion/ or inventory_config/.
"""
