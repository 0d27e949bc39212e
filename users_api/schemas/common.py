"""Query-string schemas shared by list endpoints."""

from __future__ import annotations

from typing import Any

from marshmallow import EXCLUDE, Schema, fields, validate

# Paging values travel as 32-bit signed integers
INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1

int32 = validate.Range(min=INT32_MIN, max=INT32_MAX)


class PaginationQuerySchema(Schema):
    """Decode ``pageNumber``/``pageSize`` from the query string.

    Only the type and the 32-bit range are checked here; clamping to the
    allowed page range is part of the endpoint contract and happens in the
    controller.
    """

    class Meta:
        unknown = EXCLUDE

    page_number = fields.Integer(data_key="pageNumber", load_default=1, validate=int32)
    page_size = fields.Integer(data_key="pageSize", load_default=10, validate=int32)

    def __init__(self, *, default_page_size: int = 10, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.fields["page_size"].load_default = default_page_size

    def defaults(self) -> dict[str, int]:
        return {name: field.load_default for name, field in self.fields.items()}
