"""Row change notifications for the workflow table.

`ChangeFeed` is an in-process publish/subscribe hub with one channel per
change type (INSERT, UPDATE). `PostgresChangeListener` feeds it from a
Postgres `LISTEN` connection; the notifications are emitted by the row
trigger created in the Alembic migrations.
"""

import asyncio
import json
import logging
import select
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import psycopg2
from psycopg2 import sql
from psycopg2.extensions import ISOLATION_LEVEL_AUTOCOMMIT
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
CHANGE_TYPES = (INSERT, UPDATE)

WORKFLOW_TABLE = "autoworkflow"


@dataclass
class ChangeEvent:
    """A single row change delivered to subscribers."""

    type: str
    record: Dict[str, Any] = field(default_factory=dict)
    table: str = WORKFLOW_TABLE
    truncated: bool = False

    @property
    def episode_name(self) -> Optional[str]:
        return self.record.get("episode_interview_file_name")


ChangeCallback = Callable[[ChangeEvent], None]


class Subscription:
    """Handle returned by `ChangeFeed.subscribe`; call `unsubscribe` to detach."""

    def __init__(self, feed: "ChangeFeed", event_type: str, callback: ChangeCallback):
        self._feed = feed
        self.event_type = event_type
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self._feed._remove(self)
            self.active = False


class ChangeFeed:
    """Fan-out of workflow row changes to registered callbacks.

    Callbacks run synchronously on the thread that calls `publish`. The web
    app and CLI always publish from the event loop thread, so callbacks may
    touch loop-bound objects such as futures.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: Dict[str, List[Subscription]] = {t: [] for t in CHANGE_TYPES}

    def subscribe(self, event_type: str, callback: ChangeCallback) -> Subscription:
        if event_type not in self._subscribers:
            raise ValueError(f"Unknown change type: {event_type}")
        subscription = Subscription(self, event_type, callback)
        with self._lock:
            self._subscribers[event_type].append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            subscribers = self._subscribers[subscription.event_type]
            if subscription in subscribers:
                subscribers.remove(subscription)

    def subscriber_count(self, event_type: Optional[str] = None) -> int:
        with self._lock:
            if event_type:
                return len(self._subscribers.get(event_type, []))
            return sum(len(subs) for subs in self._subscribers.values())

    def publish(self, event: ChangeEvent) -> None:
        if event.table != WORKFLOW_TABLE:
            return
        with self._lock:
            subscribers = list(self._subscribers.get(event.type, []))
        for subscription in subscribers:
            try:
                subscription.callback(event)
            except Exception:
                logger.exception(f"Change subscriber failed for {event.type} event")


def parse_notification(payload: str) -> Optional[ChangeEvent]:
    """
    Decode a NOTIFY payload into a ChangeEvent.

    Returns None for payloads that are not JSON objects or carry a change type
    other than INSERT or UPDATE.
    """
    try:
        data = json.loads(payload)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring malformed change notification: {payload!r:.200}")
        return None

    if not isinstance(data, dict) or data.get("type") not in CHANGE_TYPES:
        return None

    record = data.get("record") or {}
    if not isinstance(record, dict):
        return None

    return ChangeEvent(
        type=data["type"],
        record=record,
        table=data.get("table", WORKFLOW_TABLE),
        truncated=bool(data.get("truncated")),
    )


def to_libpq_dsn(database_url: str) -> str:
    """Convert a SQLAlchemy URL such as postgresql+psycopg2://... to a libpq DSN."""
    url = make_url(database_url).set(drivername="postgresql")
    return url.render_as_string(hide_password=False)


class PostgresChangeListener:
    """Background thread that LISTENs on a channel and forwards events to a ChangeFeed.

    Events are handed to the event loop with `call_soon_threadsafe` so that
    subscribers always run on the loop thread.
    Truncated notifications only carry the row id and episode name; when a
    repository is given the full row is re-read before publishing.
    """

    def __init__(
        self,
        database_url: str,
        channel: str,
        feed: ChangeFeed,
        loop: asyncio.AbstractEventLoop,
        poll_timeout: float = 1.0,
        reconnect_delay: float = 5.0,
        repository=None,
    ):
        self.dsn = to_libpq_dsn(database_url)
        self.channel = channel
        self.feed = feed
        self.loop = loop
        self.poll_timeout = poll_timeout
        self.reconnect_delay = reconnect_delay
        self.repository = repository
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name=f"listen-{self.channel}", daemon=True
        )
        self._thread.start()
        logger.info(f"Listening for workflow changes on channel {self.channel}")

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            self._thread = None
        logger.info("Change listener stopped")

    def _dispatch(self, payload: str) -> None:
        event = parse_notification(payload)
        if event is None:
            return
        if event.truncated:
            self._complete(event)
        if self.loop.is_closed():
            return
        self.loop.call_soon_threadsafe(self.feed.publish, event)

    def _complete(self, event: ChangeEvent) -> None:
        workflow_id = event.record.get("id")
        if self.repository is None or not workflow_id:
            return
        try:
            row = self.repository.get_workflow(workflow_id)
        except SQLAlchemyError as e:
            logger.warning(f"Could not re-read workflow {workflow_id} after truncated notification: {e}")
            return
        if row is not None:
            event.record = row.to_dict()

    def _listen(self) -> None:
        conn = psycopg2.connect(self.dsn)
        try:
            conn.set_isolation_level(ISOLATION_LEVEL_AUTOCOMMIT)
            with conn.cursor() as cursor:
                cursor.execute(sql.SQL("LISTEN {}").format(sql.Identifier(self.channel)))

            while not self._stop.is_set():
                readable, _, _ = select.select([conn], [], [], self.poll_timeout)
                if not readable:
                    continue
                conn.poll()
                while conn.notifies:
                    notify = conn.notifies.pop(0)
                    self._dispatch(notify.payload)
        finally:
            conn.close()

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                self._listen()
            except psycopg2.Error as e:
                logger.error(f"Change listener connection failed: {e}")
                self._stop.wait(self.reconnect_delay)
