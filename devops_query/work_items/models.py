"""
Models for saved queries and work items shown in query results.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from uuid import UUID, uuid4


@dataclass
class SavedQuery:
    """A user-named WIQL query; the text may contain the @AREAPATH@ token."""

    name: Optional[str] = None
    query_text: Optional[str] = None
    id: UUID = field(default_factory=uuid4)


@dataclass
class DetailModel:
    description: Optional[str] = None


@dataclass
class WorkItemViewModel:
    """A work item as listed in the query results."""

    id: Optional[str] = None
    title: Optional[str] = None
    fields: Optional[Dict[str, Any]] = None
    details: DetailModel = field(default_factory=DetailModel)

    @property
    def list_item(self) -> str:
        return f"#{self.id}: {self.title}"

    @classmethod
    def placeholder(cls, work_item_id: str, title: str) -> "WorkItemViewModel":
        """Stand-in entry used when a query or detail fetch fails."""
        return cls(id=work_item_id, title=title)
