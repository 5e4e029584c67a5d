"""Transient user notices (toasts)."""

from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Callable, Deque, Dict, List, Optional

DEFAULT = "default"
DESTRUCTIVE = "destructive"


@dataclass
class Notice:
    """A dismissible message for the dashboard."""

    title: str
    description: str
    variant: str = DEFAULT
    created_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    @property
    def is_error(self) -> bool:
        return self.variant == DESTRUCTIVE

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


def error_notice(description: str, title: str = "Error") -> Notice:
    return Notice(title=title, description=description, variant=DESTRUCTIVE)


NoticeSink = Callable[[Notice], None]


class NoticeLog:
    """Bounded, newest-last record of notices raised for one episode session."""

    def __init__(self, max_notices: int = 20):
        self._notices: Deque[Notice] = deque(maxlen=max_notices)

    def __call__(self, notice: Notice) -> None:
        self._notices.append(notice)

    @property
    def count(self) -> int:
        return len(self._notices)

    @property
    def latest(self) -> Optional[Notice]:
        return self._notices[-1] if self._notices else None

    def to_list(self) -> List[Dict[str, str]]:
        return [n.to_dict() for n in self._notices]
