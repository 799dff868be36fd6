"""
Data Ingestion Module
"""
from .catalog_sync import CatalogSyncService, SyncResult, normalize_products

__all__ = [
    "CatalogSyncService",
    "SyncResult",
    "normalize_products",
]
