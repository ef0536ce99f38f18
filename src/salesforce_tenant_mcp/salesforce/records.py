"""Query result and record structs."""

from __future__ import annotations

from typing import Any

import msgspec

from ..errors import ApiError


class _QueryPage(msgspec.Struct, kw_only=True, rename="camel"):
    """Wire shape of a query response page."""

    records: list[dict[str, Any]]
    done: bool = True
    total_size: int = 0
    next_records_url: str | None = None


class Record(msgspec.Struct, frozen=True, kw_only=True):
    """One SObject row returned by a query.

    ``data`` holds every field except ``attributes`` and ``Id``; the payload
    is not interpreted beyond ``id`` and ``type``.
    """

    id: str | None
    type: str | None
    data: dict[str, Any] = {}

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> "Record":
        attributes = raw.get("attributes")
        if not isinstance(attributes, dict):
            attributes = {}
        record_id = raw.get("Id")
        if record_id is None:
            url = attributes.get("url")
            if isinstance(url, str) and url:
                record_id = url.rstrip("/").rsplit("/", 1)[-1]
        data = {k: v for k, v in raw.items() if k not in ("attributes", "Id")}
        return cls(id=record_id, type=attributes.get("type"), data=data)

    def to_dict(self) -> dict[str, Any]:
        """Flatten back to a Salesforce-style row for tool output."""
        row: dict[str, Any] = {"Id": self.id, **self.data}
        if self.type:
            row["attributes"] = {"type": self.type}
        return row


class QueryResult(msgspec.Struct, frozen=True, kw_only=True):
    """One page of a SOQL query.

    ``next_records_url`` is set exactly when ``done`` is False.
    ``total_size`` is informational only.
    """

    done: bool
    total_size: int
    records: list[Record] = []
    next_records_url: str | None = None

    def __post_init__(self) -> None:
        if self.done and self.next_records_url is not None:
            raise ValueError("a finished query result cannot carry a cursor")
        if not self.done and not self.next_records_url:
            raise ValueError("an unfinished query result requires a cursor")

    @classmethod
    def from_response(cls, body: Any) -> "QueryResult":
        """Build a QueryResult from a decoded query response body.

        Raises:
            ApiError: If the body is not a well formed query page
        """
        try:
            page = msgspec.convert(body, _QueryPage)
        except msgspec.ValidationError as e:
            raise ApiError(0, "MALFORMED_QUERY_RESULT", str(e)) from e

        if not page.done and not page.next_records_url:
            raise ApiError(
                0,
                "MALFORMED_QUERY_RESULT",
                "done is false but nextRecordsUrl is missing",
            )

        return cls(
            done=page.done,
            total_size=page.total_size,
            records=[Record.from_raw(raw) for raw in page.records],
            next_records_url=None if page.done else page.next_records_url,
        )
