# db/models_bronze.py
"""
Bronze Layer Models - Raw source data as delivered by upstream ingestion.
Schema: bronze

The silver engines only ever read these tables.
"""

from sqlalchemy import Column, Integer, String, Date, Numeric
from sqlalchemy.orm import declarative_base

BronzeBase = declarative_base()


class BronzeCustomer(BronzeBase):
    """Raw CRM customer rows - may contain duplicates per cst_id."""

    __tablename__ = "crm_cust_info"
    __table_args__ = {"schema": "bronze"}

    dwh_row_id = Column(Integer, primary_key=True, autoincrement=True)

    cst_id = Column(Integer)
    cst_key = Column(String(50))
    cst_firstname = Column(String(50))
    cst_lastname = Column(String(50))
    cst_marital_status = Column(String(50))
    cst_gndr = Column(String(50))
    cst_create_date = Column(Date)

    def __repr__(self):
        return f"<BronzeCustomer(row={self.dwh_row_id}, cst_id={self.cst_id})>"


class BronzeProduct(BronzeBase):
    """Raw CRM product rows. prd_key encodes category and product number."""

    __tablename__ = "crm_prd_info"
    __table_args__ = {"schema": "bronze"}

    dwh_row_id = Column(Integer, primary_key=True, autoincrement=True)

    prd_id = Column(Integer)
    prd_key = Column(String(50))
    prd_nm = Column(String(255))
    prd_cost = Column(Integer)
    prd_line = Column(String(50))
    prd_start_dt = Column(Date)
    prd_end_dt = Column(Date)

    def __repr__(self):
        return f"<BronzeProduct(row={self.dwh_row_id}, prd_id={self.prd_id}, key={self.prd_key})>"


class BronzeSalesDetail(BronzeBase):
    """Raw CRM sales lines. Dates arrive as YYYYMMDD integers."""

    __tablename__ = "crm_sales_details"
    __table_args__ = {"schema": "bronze"}

    dwh_row_id = Column(Integer, primary_key=True, autoincrement=True)

    sls_ord_num = Column(String(50))
    sls_prd_key = Column(String(50))
    sls_cust_id = Column(Integer)
    sls_order_dt = Column(Integer)
    sls_ship_dt = Column(Integer)
    sls_due_dt = Column(Integer)
    sls_sales = Column(Numeric(19, 4))
    sls_quantity = Column(Integer)
    sls_price = Column(Numeric(19, 4))

    def __repr__(self):
        return f"<BronzeSalesDetail(row={self.dwh_row_id}, order={self.sls_ord_num})>"


class BronzeErpLocation(BronzeBase):
    __tablename__ = "erp_loc_a101"
    __table_args__ = {"schema": "bronze"}

    dwh_row_id = Column(Integer, primary_key=True, autoincrement=True)
    cid = Column(String(50))
    cntry = Column(String(50))


class BronzeErpCustomer(BronzeBase):
    __tablename__ = "erp_cust_az12"
    __table_args__ = {"schema": "bronze"}

    dwh_row_id = Column(Integer, primary_key=True, autoincrement=True)
    cid = Column(String(50))
    bdate = Column(Date)
    gen = Column(String(50))


class BronzeErpCategory(BronzeBase):
    __tablename__ = "erp_px_cat_g1v2"
    __table_args__ = {"schema": "bronze"}

    dwh_row_id = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(50))
    cat = Column(String(50))
    subcat = Column(String(50))
    maintenance = Column(String(50))
