"""Result shapes returned by query execution."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class QueryMetadata(BaseModel):
    """Counters reported for statements that do not return rows."""

    model_config = ConfigDict(populate_by_name=True)

    affected_rows: Optional[int] = Field(default=None, alias="affectedRows")
    insert_id: Optional[int] = Field(default=None, alias="insertId")
    changed_rows: Optional[int] = Field(default=None, alias="changedRows")


class QueryResult(BaseModel):
    """Rows (for result sets) or metadata (for mutations) of one statement."""

    model_config = ConfigDict(populate_by_name=True)

    data: List[Dict[str, Any]] = Field(default_factory=list)
    fields: Optional[List[Dict[str, Any]]] = None
    metadata: Optional[QueryMetadata] = None
    truncated: bool = False
    total_rows: Optional[int] = Field(default=None, alias="totalRows")

    def apply_row_limit(self, max_rows: int) -> "QueryResult":
        """Cap ``data`` at ``max_rows`` after the fetch.

        When rows are dropped the copy is flagged ``truncated`` and
        ``total_rows`` keeps the pre-truncation count.
        """
        total = len(self.data)
        if total <= max_rows:
            return self
        return self.model_copy(update={
            "data": self.data[:max_rows],
            "truncated": True,
            "total_rows": total,
        })

    def to_wire(self) -> Dict[str, Any]:
        """Serialize with the camelCase keys used on the wire."""
        return self.model_dump(by_alias=True, exclude_none=True)
