from __future__ import annotations

"""JSON-like value types used at report and export boundaries.

These aliases avoid `object`/`Any` so export surfaces stay auditable: if an
artifact is meant to be JSON, its value space is declared as JSON-compatible.
"""

from typing import TypeAlias


JSONScalar: TypeAlias = str | int | float | bool | None
JSONValue: TypeAlias = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]
JSONObject: TypeAlias = dict[str, JSONValue]
JSONArray: TypeAlias = list[JSONValue]
