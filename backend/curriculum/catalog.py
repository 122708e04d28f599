"""
Curriculum catalog: the fixed category list and the allowed term levels.

Why:
    The server validation and every client that renders category pickers must
    agree on the same enumeration. This module is the single source; the web
    layer exposes it via `GET /api/content/catalog` instead of clients
    embedding their own copy.
"""
from __future__ import annotations

import math
from typing import Optional

# Topic order (not level order); used for topic-first selection in the UI.
ALL_CATEGORIES: tuple[str, ...] = (
    "Cloud & Internet Basics",
    "Azure Basics",
    "Data Basics",
    "SQL Fundamentals",
    "Python Basics",
    "File Formats",
    "Python Intermediate",
    "Python Key Libraries",
    "Azure Data Services",
    "ETL & Data Integration",
    "Apache Spark Core",
    "Spark Streaming",
    "Delta Lake",
    "Azure Databricks",
    "Data Architecture Concepts",
    "SQL Advanced",
    "Streaming & Messaging",
    "dbt & Orchestration",
    "Data Quality & Governance",
    "Security & Access",
    "DevOps & Version Control",
    "Monitoring & Observability",
    "Networking & Protocols",
    "Power BI & Reporting",
)

VALID_LEVELS: tuple[int, ...] = (2, 3, 4, 5)

_CATEGORY_SET = frozenset(ALL_CATEGORIES)


def is_valid_category(value: object) -> bool:
    return isinstance(value, str) and value.strip() in _CATEGORY_SET


def parse_level(value: object) -> Optional[int]:
    """Return the level as int when it is one of VALID_LEVELS, else None.

    Accepts ints, integral floats and numeric strings ("4", "4.0"); booleans
    are rejected.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)):
        return None
    if isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            return None
        value = int(value)
    return value if value in VALID_LEVELS else None


def catalog_payload() -> dict:
    return {"categories": list(ALL_CATEGORIES), "levels": list(VALID_LEVELS)}


__all__ = ["ALL_CATEGORIES", "VALID_LEVELS", "is_valid_category", "parse_level", "catalog_payload"]
