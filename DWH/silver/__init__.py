"""
Silver Layer - cleansing and change handling between bronze and gold.
Hardcoded CRM entities use watermarks / SCD1 / SCD2 / delta append;
ERP tables are reloaded by the metadata-driven engine.
"""

from DWH.silver.transformer import run_silver_transform, load_entity
from DWH.silver.customers import merge_customers_incremental, clean_customer_data
from DWH.silver.products import merge_products_versioned, clean_product_data
from DWH.silver.sales import append_sales_delta, clean_sales_data
from DWH.silver.metadata_driven import run_configured_loads, reload_entry
from DWH.silver.validator import run_entity_checks
from DWH.silver.fingerprint import fingerprint, fingerprint_frame
from DWH.silver.results import LoadResult, EntryResult

__all__ = [
    "run_silver_transform",
    "load_entity",
    "merge_customers_incremental",
    "clean_customer_data",
    "merge_products_versioned",
    "clean_product_data",
    "append_sales_delta",
    "clean_sales_data",
    "run_configured_loads",
    "reload_entry",
    "run_entity_checks",
    "fingerprint",
    "fingerprint_frame",
    "LoadResult",
    "EntryResult",
]
