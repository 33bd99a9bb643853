"""
Model Training - Read-only Repositories.

The trainer reads three stores owned by the wider system:

- ContentRepository:  ingested content items by id
- AnalysisRepository: past predictions (headline factors) by date
- AlertRepository:    whether an alert was raised for an item

Only the abstract contracts and in-memory implementations live
here; production adapters wrap the system's own database.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set

from core.clock import ensure_utc
from virality_scoring.types import ContentItem


@dataclass(frozen=True)
class AnalysisRecord:
    """A stored past prediction for one content item."""

    analysis_id: str
    item_id: str
    created_at: datetime
    factors: Dict[str, float] = field(default_factory=dict, hash=False)
    score: Optional[float] = None
    risk_tier: Optional[str] = None


class ContentRepository(ABC):

    @abstractmethod
    def find_by_id(self, item_id: str) -> Optional[ContentItem]:
        pass


class AnalysisRepository(ABC):

    @abstractmethod
    def find_in_date_range(self, date_from: datetime, date_to: datetime) -> List[AnalysisRecord]:
        """Records with ``date_from <= created_at <= date_to``, oldest first."""
        pass


class AlertRepository(ABC):

    @abstractmethod
    def has_alert(self, item_id: str) -> bool:
        pass


# =============================================================
# IN-MEMORY IMPLEMENTATIONS
# =============================================================


class InMemoryContentRepository(ContentRepository):

    def __init__(self, items: Iterable[ContentItem] = ()):
        self._items: Dict[str, ContentItem] = {item.item_id: item for item in items}

    def add(self, item: ContentItem) -> None:
        self._items[item.item_id] = item

    def find_by_id(self, item_id: str) -> Optional[ContentItem]:
        return self._items.get(item_id)


class InMemoryAnalysisRepository(AnalysisRepository):

    def __init__(self, records: Iterable[AnalysisRecord] = ()):
        self._records: List[AnalysisRecord] = list(records)

    def add(self, record: AnalysisRecord) -> None:
        self._records.append(record)

    def find_in_date_range(self, date_from: datetime, date_to: datetime) -> List[AnalysisRecord]:
        start, end = ensure_utc(date_from), ensure_utc(date_to)
        matching = [r for r in self._records if start <= ensure_utc(r.created_at) <= end]
        return sorted(matching, key=lambda r: ensure_utc(r.created_at))


class InMemoryAlertRepository(AlertRepository):

    def __init__(self, item_ids: Iterable[str] = ()):
        self._item_ids: Set[str] = set(item_ids)

    def add(self, item_id: str) -> None:
        self._item_ids.add(item_id)

    def has_alert(self, item_id: str) -> bool:
        return item_id in self._item_ids
