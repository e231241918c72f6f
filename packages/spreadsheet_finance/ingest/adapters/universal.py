"""Universal Row Parser: schema-driven mapping of registry rows to entities.

Contract
--------
- Column indices are resolved once, against the header row, for every field of
  the schema. Unresolved fields and blank cells take the field fallback.
- Rows whose cells are all blank are skipped without inspection.
- A row is rejected when any ``required`` field coerces to ``None`` or ``""``.
- Accepted rows get a fresh ``id`` (uuid4) and their physical ``row_index``,
  then the schema's post-process step runs before the typed model is built.

Failure mode
------------
Nothing here raises for bad data. A row that still fails model validation after
coercion is logged at debug level and dropped like any other rejected row.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ValidationError

from ...logging_setup import get_logger
from ...models import (
    Asset,
    BankAccount,
    Investment,
    JournalEntry,
    NetWorthEntry,
    Subscription,
    Trade,
)
from ...normalizers import normalize_ticker, parse_boolean, parse_number
from ...schemas import FieldType, SchemaDefinition, apply_post_process
from ...temporal import parse_flexible
from ..tabular import cell_at, is_blank_row, resolve_indices

_logger = get_logger("spreadsheet_finance.ingest.adapters.universal")

ENTITY_MODELS: Mapping[str, type[BaseModel]] = {
    "assets": Asset,
    "investments": Investment,
    "trades": Trade,
    "subscriptions": Subscription,
    "accounts": BankAccount,
    "journal": JournalEntry,
    "logData": NetWorthEntry,
}


def convert_value(raw: str | None, value_type: FieldType, fallback: Any = None) -> Any:
    """Coerce one raw cell according to ``value_type``."""

    if raw is None or not raw.strip():
        return fallback

    match value_type:
        case FieldType.NUMBER:
            return parse_number(raw)
        case FieldType.DATE:
            parsed = parse_flexible(raw)
            return parsed if parsed is not None else fallback
        case FieldType.BOOLEAN:
            return parse_boolean(raw, fallback)
        case FieldType.TICKER:
            return normalize_ticker(raw)
        case FieldType.STRING:
            return raw.strip()
    raise ValueError(f"Unknown field type: {value_type!r}")


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


class UniversalParser:
    """Map registry rows to typed entities using a :class:`SchemaDefinition`."""

    @staticmethod
    def map_row(
        row: Sequence[str],
        indices: Mapping[str, int | None],
        schema: SchemaDefinition,
    ) -> dict[str, Any] | None:
        """Return the coerced record for ``row`` or ``None`` when rejected."""

        record: dict[str, Any] = {}
        missing: list[str] = []
        for name, fd in schema.fields.items():
            value = convert_value(cell_at(row, indices.get(name)), fd.value_type, fd.fallback)
            if fd.required and _is_empty(value):
                missing.append(name)
            record[name] = value
        if missing:
            _logger.debug("row:rejected schema=%s missing=%s", schema.id, ",".join(missing))
            return None
        return record

    @classmethod
    def parse(
        cls,
        rows: Sequence[Sequence[str]],
        header_index: int,
        schema: SchemaDefinition,
        *,
        model: type[BaseModel] | None = None,
    ) -> list[Any]:
        """Parse every row below ``header_index``.

        Parameters
        ----------
        rows:
            Split sheet rows (see :func:`..tabular.parse_lines`).
        header_index:
            Physical index of the header row.
        schema:
            Field table to resolve and coerce with.
        model:
            Entity model to build. Defaults to the registered model for
            ``schema.id``; schemas without one yield plain ``dict`` records.

        Returns
        -------
        list
            Entities in sheet order.
        """

        if len(rows) <= header_index:
            return []

        entity_model = model or ENTITY_MODELS.get(schema.id)
        indices = resolve_indices(rows[header_index], schema)
        results: list[Any] = []
        rejected = 0

        for row_index in range(header_index + 1, len(rows)):
            row = rows[row_index]
            if is_blank_row(row):
                continue

            record = cls.map_row(row, indices, schema)
            if record is None:
                rejected += 1
                continue

            record["id"] = str(uuid.uuid4())
            record["row_index"] = row_index
            record = dict(apply_post_process(schema.post_process, record))

            if entity_model is None:
                results.append(record)
                continue
            try:
                results.append(entity_model.model_validate(record))
            except ValidationError:
                rejected += 1
                _logger.debug(
                    "row:invalid schema=%s row_index=%d", schema.id, row_index, exc_info=True
                )

        _logger.info(
            "parse:complete schema=%s header_index=%d accepted=%d rejected=%d",
            schema.id,
            header_index,
            len(results),
            rejected,
        )
        return results


__all__ = ["ENTITY_MODELS", "UniversalParser", "convert_value"]
