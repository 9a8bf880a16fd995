"""Ingestion layer.

Turns raw ``POST /update`` bodies into normalized patches that only the
state/store layer is allowed to merge.
"""

__all__: list[str] = []
