"""
Availability checks for optional relations.

Older copies of the hosted schema lack some tables (`product_ratings`, `vendor_ratings`).
Queries that would join them first ask the probe; results are cached per database URL so
a missing table costs one inspection, not one failed query per request.
"""

from __future__ import annotations

import logging
from typing import Dict, Tuple, Union

from sqlalchemy import inspect
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

Bind = Union[Engine, Connection]


class SchemaProbe:
    """Caches whether tables exist in the bound database."""

    def __init__(self) -> None:
        self._cache: Dict[Tuple[str, str], bool] = {}

    @staticmethod
    def _key(bind: Bind, table_name: str) -> Tuple[str, str]:
        engine = bind.engine if isinstance(bind, Connection) else bind
        return str(engine.url), table_name

    # PUBLIC_INTERFACE
    def has_table(self, bind: Bind, table_name: str) -> bool:
        """Return True if `table_name` exists; inspection failures count as absent."""
        key = self._key(bind, table_name)
        if key in self._cache:
            return self._cache[key]
        try:
            exists = inspect(bind).has_table(table_name)
        except SQLAlchemyError as exc:
            logger.warning("Could not inspect table %s, treating it as unavailable: %s", table_name, exc)
            exists = False
        if not exists:
            logger.info("Optional table %s is not available", table_name)
        self._cache[key] = exists
        return exists

    # PUBLIC_INTERFACE
    def mark_missing(self, bind: Bind, table_name: str) -> None:
        """Record that a query against `table_name` failed so later requests skip it."""
        self._cache[self._key(bind, table_name)] = False

    # PUBLIC_INTERFACE
    def reset(self) -> None:
        self._cache.clear()


schema_probe = SchemaProbe()


def product_ratings_exist(bind: Bind) -> bool:
    return schema_probe.has_table(bind, "product_ratings")


def vendor_ratings_exist(bind: Bind) -> bool:
    return schema_probe.has_table(bind, "vendor_ratings")
