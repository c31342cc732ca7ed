# db/models_silver.py
"""
Silver Layer Models - Cleaned, deduplicated and history-aware data.
Schema: silver
"""

from sqlalchemy import Boolean, Column, Integer, String, DateTime, Date, Numeric, func
from sqlalchemy.orm import declarative_base

SilverBase = declarative_base()


class SilverCustomer(SilverBase):
    """Current-state customers (SCD Type 1). One row per cst_id."""

    __tablename__ = "crm_cust_info"
    __table_args__ = {"schema": "silver"}

    cst_id = Column(Integer, primary_key=True, autoincrement=False)

    cst_key = Column(String(50), nullable=False, index=True)
    cst_firstname = Column(String(50))
    cst_lastname = Column(String(50))
    cst_marital_status = Column(String(50))
    cst_gndr = Column(String(50))
    cst_create_date = Column(Date)

    # Change detection
    dwh_hash_full = Column(String(64))
    dwh_create_date = Column(DateTime, server_default=func.now())
    dwh_last_changed = Column(DateTime)

    def __repr__(self):
        return f"<SilverCustomer(cst_id={self.cst_id}, key={self.cst_key})>"


class SilverProduct(SilverBase):
    """Versioned products (SCD Type 2). At most one is_current row per prd_id."""

    __tablename__ = "crm_prd_info"
    __table_args__ = {"schema": "silver"}

    dwh_version_id = Column(Integer, primary_key=True, autoincrement=True)

    prd_id = Column(Integer, nullable=False, index=True)
    cat_id = Column(String(50))
    prd_key = Column(String(50), nullable=False, index=True)
    prd_nm = Column(String(255))
    prd_cost = Column(Integer)
    prd_line = Column(String(50))
    prd_start_dt = Column(Date)

    # Validity interval
    effective_date = Column(DateTime, nullable=False)
    expiry_date = Column(DateTime)
    is_current = Column(Boolean, nullable=False, default=True)

    dwh_hash_full = Column(String(64))
    dwh_create_date = Column(DateTime, server_default=func.now())

    def __repr__(self):
        return (f"<SilverProduct(prd_id={self.prd_id}, key={self.prd_key}, "
                f"current={self.is_current})>")


class SilverSalesDetail(SilverBase):
    """Append-only sales facts. Natural key: (sls_ord_num, sls_prd_key)."""

    __tablename__ = "crm_sales_details"
    __table_args__ = {"schema": "silver"}

    dwh_row_id = Column(Integer, primary_key=True, autoincrement=True)

    sls_ord_num = Column(String(50), nullable=False)
    sls_prd_key = Column(String(50), nullable=False, index=True)
    sls_cust_id = Column(Integer, nullable=False, index=True)
    sls_order_dt = Column(Date)
    sls_ship_dt = Column(Date)
    sls_due_dt = Column(Date)
    sls_sales = Column(Numeric(19, 4))
    sls_quantity = Column(Integer)
    sls_price = Column(Numeric(19, 4))

    dwh_batch_id = Column(Integer)
    dwh_create_date = Column(DateTime, server_default=func.now())

    def __repr__(self):
        return f"<SilverSalesDetail(order={self.sls_ord_num}, prd={self.sls_prd_key})>"


# ERP targets - loaded by the metadata-driven engine, shape declared in audit.etl_config

class SilverErpLocation(SilverBase):
    __tablename__ = "erp_loc_a101"
    __table_args__ = {"schema": "silver"}

    cid = Column(String(50), primary_key=True)
    cntry = Column(String(50))
    dwh_hash_full = Column(String(64))
    dwh_create_date = Column(DateTime, server_default=func.now())


class SilverErpCustomer(SilverBase):
    __tablename__ = "erp_cust_az12"
    __table_args__ = {"schema": "silver"}

    cid = Column(String(50), primary_key=True)
    bdate = Column(Date)
    gen = Column(String(50))
    dwh_hash_full = Column(String(64))
    dwh_create_date = Column(DateTime, server_default=func.now())


class SilverErpCategory(SilverBase):
    __tablename__ = "erp_px_cat_g1v2"
    __table_args__ = {"schema": "silver"}

    id = Column(String(50), primary_key=True)
    cat = Column(String(50))
    subcat = Column(String(50))
    maintenance = Column(String(50))
    dwh_hash_full = Column(String(64))
    dwh_create_date = Column(DateTime, server_default=func.now())
