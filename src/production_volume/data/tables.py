"""
Table metadata for the operational databases and the cache store.

Tables carry no schema; the engines translate it to ``dbo`` (or DB_SCHEMA)
when running against SQL Server.
"""

from sqlalchemy import (
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    func,
)

# ------------------------------------------------------------
# Operational source tables (read only, identical in every DB)
# ------------------------------------------------------------
source_metadata = MetaData()

product_tran = Table(
    "ProductTran",
    source_metadata,
    Column("TranDate", DateTime),
    Column("PartNo", String(50)),
    Column("TranType", String(10)),
    Column("DInventoryNo", String(10)),
    Column("TranQty", Numeric(18, 2)),
)

material_tran = Table(
    "materialtran",
    source_metadata,
    Column("TranDate", DateTime),
    Column("TranType", String(10)),
    Column("DInventoryNo", String(10)),
    Column("TranQty", Numeric(18, 2)),
)

product = Table(
    "Product",
    source_metadata,
    Column("PartNo", String(50)),
    Column("ProductType", String(10)),
)

process_detail = Table(
    "ProcessDetail",
    source_metadata,
    Column("PartNo", String(50)),
    Column("ProcessAreaNo", String(10)),
)

# ------------------------------------------------------------
# Cache store
# ------------------------------------------------------------
CACHE_TABLE_NAME = "iot_pdvolume"
CACHE_INDEX_NAME = "IDX_iot_pdvolume_Date"

cache_metadata = MetaData()

pd_volume = Table(
    CACHE_TABLE_NAME,
    cache_metadata,
    Column("Id", Integer, primary_key=True, autoincrement=True),
    Column("TranDate", DateTime),
    Column("Plant", String(50)),
    Column("TranQty", Numeric(18, 2)),
    Column("CreatedDate", DateTime, server_default=func.current_timestamp()),
)

Index(CACHE_INDEX_NAME, pd_volume.c.TranDate)
