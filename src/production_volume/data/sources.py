"""
Plant rules and per-database source descriptors.

Each plant is defined by the databases it reads, the transaction table it
sums, and the inventory / product-type / process-area filters that select its
rows. Live aggregation runs one partial query per (plant, database) pair.

Plating-Sub and DOM/EXP/EXP2 split the SPdb_* transactions on whether the
part passes through process area 6.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Sequence, Tuple

from sqlalchemy import Select, func, select

from production_volume.data.models import DateRange, Plant
from production_volume.data.tables import (
    material_tran,
    process_detail,
    product,
    product_tran,
)

PLATING_PROCESS_AREA = "6"


class SourceDatabase(str, Enum):
    BRAZING = "Brazing"
    USUI = "USUI"
    SPDB_EXP = "SPdb_Exp"
    SPDB_EXP2 = "SPdb_Exp2"
    SPDB_DOM = "SPdb_Dom"


class TranTable(Enum):
    PRODUCT = "ProductTran"
    MATERIAL = "materialtran"


class ProcessAreaFilter(Enum):
    ANY = "any"
    REQUIRED = "required"
    EXCLUDED = "excluded"


PLATING_DATABASES = (
    SourceDatabase.SPDB_EXP,
    SourceDatabase.SPDB_EXP2,
    SourceDatabase.SPDB_DOM,
)


@dataclass(frozen=True)
class PlantRule:
    plant: Plant
    databases: Tuple[SourceDatabase, ...]
    tran_table: TranTable = TranTable.PRODUCT
    tran_type: str = "RP"
    inventory_no: str = "32"
    product_type: Optional[str] = "P"
    process_area: ProcessAreaFilter = ProcessAreaFilter.ANY


PLANT_RULES: Tuple[PlantRule, ...] = (
    PlantRule(Plant.BRAZING, (SourceDatabase.BRAZING,)),
    PlantRule(Plant.LP, (SourceDatabase.USUI,)),
    PlantRule(
        Plant.PLATING_SUB,
        PLATING_DATABASES,
        inventory_no="31",
        product_type="S",
        process_area=ProcessAreaFilter.REQUIRED,
    ),
    PlantRule(
        Plant.PLATING_GREITMO,
        PLATING_DATABASES,
        tran_table=TranTable.MATERIAL,
        tran_type="RG",
        inventory_no="11",
        product_type=None,
    ),
    PlantRule(Plant.DOM, (SourceDatabase.SPDB_DOM,), process_area=ProcessAreaFilter.EXCLUDED),
    PlantRule(Plant.EXP, (SourceDatabase.SPDB_EXP,), process_area=ProcessAreaFilter.EXCLUDED),
    PlantRule(Plant.EXP2, (SourceDatabase.SPDB_EXP2,), process_area=ProcessAreaFilter.EXCLUDED),
)


@dataclass(frozen=True)
class SourceQuery:
    """One partial query: a plant rule evaluated against one database."""

    rule: PlantRule
    database: SourceDatabase

    @property
    def plant(self) -> Plant:
        return self.rule.plant

    def __str__(self) -> str:
        return f"{self.rule.plant.value}@{self.database.value}"


def source_queries(rules: Sequence[PlantRule] = PLANT_RULES) -> List[SourceQuery]:
    return list(_expand(rules))


def _expand(rules: Sequence[PlantRule]) -> Iterator[SourceQuery]:
    for rule in rules:
        for database in rule.databases:
            yield SourceQuery(rule, database)


def build_partial_select(rule: PlantRule, date_range: DateRange) -> Select:
    """
    SELECT TranDate, SUM(TranQty) AS TranQty for one plant rule, grouped by
    TranDate. Runs unchanged against any of the rule's databases.
    """
    start, end_exclusive = date_range.bounds()

    if rule.tran_table is TranTable.MATERIAL:
        t = material_tran
        stmt = select(t.c.TranDate, func.sum(t.c.TranQty).label("TranQty"))
    else:
        t = product_tran
        stmt = select(
            t.c.TranDate, func.sum(t.c.TranQty).label("TranQty")
        ).select_from(t.join(product, product.c.PartNo == t.c.PartNo))
        if rule.product_type is not None:
            stmt = stmt.where(product.c.ProductType == rule.product_type)

    stmt = stmt.where(
        t.c.TranType == rule.tran_type,
        t.c.DInventoryNo == rule.inventory_no,
        t.c.TranDate >= start,
        t.c.TranDate < end_exclusive,
    )

    if rule.process_area is not ProcessAreaFilter.ANY:
        in_area = (
            select(process_detail.c.PartNo)
            .where(
                process_detail.c.PartNo == t.c.PartNo,
                process_detail.c.ProcessAreaNo == PLATING_PROCESS_AREA,
            )
            .exists()
        )
        stmt = stmt.where(in_area if rule.process_area is ProcessAreaFilter.REQUIRED else ~in_area)

    return stmt.group_by(t.c.TranDate)
