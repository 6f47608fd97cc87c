"""Encode and decode persisted spreadsheet snapshots.

Snapshot shape::

    {
      "Cells": {
        "A1": {"StringForm": "5"},
        "B1": {"StringForm": "=A1*2"}
      }
    }

Only non-empty cells are written.  Decoding is lenient about absence:
top-level ``null``, a missing ``Cells`` key, ``"Cells": null``, a null
cell record and a null ``StringForm`` all mean "empty".  Everything else
is validated against the pydantic models below.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping, Union

from pydantic import BaseModel, ConfigDict

PathLike = Union[str, os.PathLike]


class CellRecord(BaseModel):
    """Persisted form of one cell."""

    model_config = ConfigDict(extra="ignore")

    StringForm: str | None = None


class SheetSnapshot(BaseModel):
    """Persisted form of a whole spreadsheet."""

    model_config = ConfigDict(extra="ignore")

    Cells: dict[str, CellRecord | None] | None = None


def encode_snapshot(string_forms: Mapping[str, str]) -> dict[str, Any]:
    """Build the snapshot document for the given ``name -> StringForm`` map.

    Names are written in sorted order so saves are deterministic.
    """
    return {
        "Cells": {name: {"StringForm": string_forms[name]} for name in sorted(string_forms)}
    }


def decode_snapshot(data: Any) -> list[tuple[str, str]]:
    """Validate a decoded JSON document and return ``(name, StringForm)`` pairs.

    Pairs keep document order.  A missing StringForm is returned as ``""``.

    Raises:
        pydantic.ValidationError: If the document does not have the
            snapshot shape.
    """
    if data is None:
        return []
    snapshot = SheetSnapshot.model_validate(data)
    if not snapshot.Cells:
        return []
    pairs: list[tuple[str, str]] = []
    for name, record in snapshot.Cells.items():
        if record is None or record.StringForm is None:
            pairs.append((name, ""))
        else:
            pairs.append((name, record.StringForm))
    return pairs


def read_snapshot(path: PathLike) -> list[tuple[str, str]]:
    """Read a snapshot file and return its ``(name, StringForm)`` pairs.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the file is not valid JSON or not a snapshot.
    """
    text = Path(path).read_text(encoding="utf-8")
    return decode_snapshot(json.loads(text))


def write_snapshot(path: PathLike, document: dict[str, Any], indent: int | None = 2) -> None:
    """Write a snapshot document as JSON.

    Raises:
        OSError: If the file cannot be written.
    """
    text = json.dumps(document, indent=indent or None, ensure_ascii=False)
    Path(path).write_text(text + "\n", encoding="utf-8")
