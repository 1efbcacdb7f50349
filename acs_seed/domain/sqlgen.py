"""
Bulk INSERT generators for access groups, doors and zones.

Each generator returns a single ``INSERT ... VALUES (...), (...);`` statement.
Access groups and zones are written with literal values and read the same on
MariaDB and MSSQL; doors stamp the dialect-specific current time.
"""

import random
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional


class Dialect(Enum):
    """Target database flavour."""
    MARIADB = "mariadb"
    MSSQL = "mssql"

    @property
    def now(self) -> str:
        """SQL expression for the current timestamp."""
        return "NOW()" if self is Dialect.MARIADB else "GETDATE()"


ACCESS_GROUP_TABLE = "t_acsgr"
DOOR_TABLE = "t_dr"
ZONE_TABLE = "t_zn"

# zone types 0..5: APB, fire alarm, forced lock, forced unlock, timed APB, reserve
ZONE_TYPE_RANGE = (0, 5)
ZONE_LAST_UPDATE_RANGE = (1620000000, 1629999999)
LAST_MODIFIED_FLOOR = datetime(2020, 1, 1)


def quote(value: str) -> str:
    """Render a SQL string literal."""
    return "'" + value.replace("'", "''") + "'"


def _insert(table: str, columns: List[str], rows: List[str]) -> str:
    return f"INSERT INTO {table} ({', '.join(columns)}) VALUES " + ", ".join(rows) + ";"


def _random_timestamp(rng: random.Random, start: datetime, end: datetime) -> str:
    moment = start + (end - start) * rng.random()
    return moment.strftime("%Y-%m-%d %H:%M:%S")


def access_group_insert(count: int, rng: Optional[random.Random] = None,
                        now: Optional[datetime] = None) -> str:
    """INSERT for ``count`` access groups with random last-modified dates since 2020."""
    rng = rng or random.Random()
    now = now or datetime.now()
    rows: List[str] = []
    for i in range(1, count + 1):
        last_modified = _random_timestamp(rng, LAST_MODIFIED_FLOOR, now)
        rows.append(
            f"({quote(f'Test Access Group {i}')}, {quote(f'Access Group from script {i}')}, "
            f"'N', NULL, 1, {quote(last_modified)})"
        )
    return _insert(ACCESS_GROUP_TABLE, ["NM", "DSCR", "DEL", "DELDT", "LSTMOD", "LSTMODDT"], rows)


def door_insert(count: int, dialect: Dialect = Dialect.MARIADB) -> str:
    """INSERT for ``count`` doors in door group 1."""
    rows: List[str] = []
    for i in range(1, count + 1):
        rows.append(
            f"({quote(f'Test Door {i}')}, {quote(f'Door generated from script {i}')}, "
            f"'N', 1, 3, 0, {dialect.now})"
        )
    return _insert(DOOR_TABLE, ["NM", "DSCR", "DEL", "DRGRUID", "OPDRTSS", "LSTMOD", "LSTMODDT"], rows)


def zone_insert(count: int, rng: Optional[random.Random] = None) -> str:
    """INSERT for ``count`` global zones of random type."""
    rng = rng or random.Random()
    rows: List[str] = []
    for i in range(1, count + 1):
        zone_type = rng.randint(*ZONE_TYPE_RANGE)
        last_update = rng.randint(*ZONE_LAST_UPDATE_RANGE)
        rows.append(
            f"({quote(f'Test Zone {i}')}, {quote(f'Zone generated from script {i}')}, "
            f"{zone_type}, 'Y', {last_update}, 'N', NULL, 0, 'Y')"
        )
    return _insert(ZONE_TABLE, ["NM", "DSCR", "TYP", "ISGLB", "LSTUDT", "DEL", "DELDT", "STA", "ENB"], rows)


# entity name -> generator taking (count, dialect); only doors depend on the dialect
GENERATORS: Dict[str, Callable[[int, Dialect], str]] = {
    "access-groups": lambda count, dialect: access_group_insert(count),
    "doors": door_insert,
    "zones": lambda count, dialect: zone_insert(count),
}

OUTPUT_FILES: Dict[str, str] = {
    "access-groups": f"add_{ACCESS_GROUP_TABLE}.sql",
    "doors": f"add_{DOOR_TABLE}.sql",
    "zones": f"add_{ZONE_TABLE}.sql",
}
