"""Generic fetch / normalize / upsert for one Jira entity collection"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from sqlalchemy import JSON
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from jiramirror.errors import EntityFetchFailed, JiraApiError, NormalizationSkipped
from jiramirror.models.base import Store, utcnow

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------
# Pagination
# ----------------------------------------------------------------------


def extract_items(payload: Any, items_key: Optional[str] = None) -> List[Any]:
    """Pull the record list out of an inconsistently shaped response.

    ``items_key`` may be a dotted path (``fields.attachment``). Handles bare
    lists, lists under a key, and dicts keyed by id (the permissions endpoint).
    """
    data = payload
    if items_key:
        for part in items_key.split("."):
            data = data.get(part) if isinstance(data, dict) else None
            if data is None:
                return []
    if data is None:
        return []
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        values = list(data.values())
        if values and all(isinstance(v, dict) for v in values):
            return values
    return []


@dataclass
class Page:
    items: List[Any]
    # None once the collection is exhausted.
    next_cursor: Optional[int] = None


class SinglePagePager:
    """Endpoint that returns the whole collection in one response."""

    initial_cursor: Optional[int] = None

    def __init__(self, path: str, items_key: Optional[str] = None, params: Optional[Dict[str, Any]] = None):
        self.path = path
        self.items_key = items_key
        self.params = params

    def fetch_page(self, client, cursor: Optional[int]) -> Page:
        payload = client.get(self.path, params=self.params)
        return Page(extract_items(payload, self.items_key), None)


class OffsetPager:
    """``startAt`` / ``maxResults`` pagination.

    Keeps requesting while a page comes back full (exactly ``page_size``
    items). With ``method="POST"`` the offset travels in the JSON body.
    """

    initial_cursor: int = 0

    def __init__(
        self,
        path: str,
        items_key: Optional[str] = None,
        page_size: int = 100,
        *,
        method: str = "GET",
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ):
        self.path = path
        self.items_key = items_key
        self.page_size = page_size
        self.method = method.upper()
        self.params = params or {}
        self.body = body or {}

    def fetch_page(self, client, cursor: Optional[int]) -> Page:
        start_at = cursor or 0
        if self.method == "POST":
            body = dict(self.body, startAt=start_at, maxResults=self.page_size)
            payload = client.post(self.path, body)
        else:
            params = dict(self.params, startAt=start_at, maxResults=self.page_size)
            payload = client.get(self.path, params=params)

        items = extract_items(payload, self.items_key)
        if len(items) == self.page_size and items:
            return Page(items, start_at + len(items))
        return Page(items, None)


def iter_records(pager, client) -> Iterator[Any]:
    """Lazily walk every page, always starting from the pager's initial cursor."""
    cursor = pager.initial_cursor
    while True:
        page = pager.fetch_page(client, cursor)
        for item in page.items:
            yield item
        if page.next_cursor is None:
            return
        cursor = page.next_cursor


# ----------------------------------------------------------------------
# Records and definitions
# ----------------------------------------------------------------------


@dataclass
class EntityRecord:
    entity_type: str
    account_id: int
    natural_key: str
    fields: Dict[str, Any]
    raw: Any


@dataclass
class EntityDefinition:
    """Everything type-specific about one entity collection.

    ``scope_source`` (optional) reads scope keys (project keys, issue keys)
    from the store at call time; ``pager`` then receives each scope.
    ``normalize`` maps a raw record (plus its scope) to column values and must
    not raise on missing optional fields.
    """

    name: str
    model: Any
    tier: int
    pager: Callable[[Optional[str]], Any]
    natural_key: Callable[[Any], Optional[str]]
    normalize: Callable[[Any, Optional[str]], Dict[str, Any]]
    scope_source: Optional[Callable[[Session, int], Sequence[str]]] = None
    depends_on: Sequence[str] = field(default_factory=tuple)
    description: str = ""

    @property
    def table_name(self) -> str:
        return self.model.__tablename__

    @property
    def key_column(self) -> str:
        return self.model.__natural_key__


def _coerce(column, value: Any) -> Any:
    """Structured values headed for a scalar column are stored as JSON text."""
    if isinstance(value, (dict, list)) and not isinstance(column.type, JSON):
        return json.dumps(value, sort_keys=True)
    return value


@dataclass
class TaskCounts:
    upserted: int = 0
    skipped: int = 0
    scopes: int = 0
    scope_failures: int = 0
    scope_errors: List[str] = field(default_factory=list)


class EntitySyncTask:
    """Fetch one collection, normalize each record, and upsert by natural key."""

    def __init__(self, definition: EntityDefinition, store: Store):
        self.definition = definition
        self.store = store

    @property
    def name(self) -> str:
        return self.definition.name

    def fetch(self, client, scope: Optional[str] = None) -> Iterator[Any]:
        return iter_records(self.definition.pager(scope), client)

    def normalize(self, account_id: int, raw: Any, scope: Optional[str] = None) -> EntityRecord:
        d = self.definition
        key = d.natural_key(raw) if raw is not None else None
        if key is None or key == "":
            raise NormalizationSkipped(d.name)
        fields = d.normalize(raw, scope)
        return EntityRecord(d.name, account_id, str(key), fields, raw)

    def upsert(self, db: Session, record: EntityRecord) -> None:
        """Write by (account_id, natural key); an existing row is fully overwritten."""
        model = self.definition.model
        key_column = self.definition.key_column
        row = (
            db.query(model)
            .filter(model.account_id == record.account_id, getattr(model, key_column) == record.natural_key)
            .first()
        )
        if row is None:
            row = model(account_id=record.account_id)
            setattr(row, key_column, record.natural_key)
            db.add(row)

        # Every mapped column is rewritten, so fields missing upstream become NULL.
        for column in model.__table__.columns:
            name = column.key
            if name in ("id", "account_id", key_column, "raw_data", "updated_at"):
                continue
            setattr(row, name, _coerce(column, record.fields.get(name)))
        row.raw_data = record.raw
        row.updated_at = utcnow()

    def _scopes(self, account_id: int) -> List[Optional[str]]:
        if self.definition.scope_source is None:
            return [None]
        db = self.store.session()
        try:
            return list(self.definition.scope_source(db, account_id))
        finally:
            db.close()

    def _sync_scope(self, db: Session, account_id: int, client, scope: Optional[str], counts: TaskCounts):
        for raw in self.fetch(client, scope):
            try:
                record = self.normalize(account_id, raw, scope)
            except NormalizationSkipped:
                counts.skipped += 1
                continue
            self.upsert(db, record)
            db.flush()
            counts.upserted += 1

    def sync(self, account_id: int, client) -> TaskCounts:
        """Sync the whole collection for one account.

        Unscoped fetch failures raise EntityFetchFailed. For scoped types a
        failing scope (one project, one issue) is rolled back, counted, and
        the next scope continues.
        """
        name = self.definition.name
        counts = TaskCounts()
        scopes = self._scopes(account_id)
        scoped = self.definition.scope_source is not None
        logger.info(f"Syncing {name} for account {account_id} ({len(scopes) if scoped else 1} scope(s))")

        db = self.store.session()
        try:
            for scope in scopes:
                counts.scopes += 1
                before = (counts.upserted, counts.skipped)
                try:
                    self._sync_scope(db, account_id, client, scope, counts)
                    db.commit()
                except (JiraApiError, SQLAlchemyError, TypeError, ValueError) as e:
                    db.rollback()
                    counts.upserted, counts.skipped = before
                    status_code = getattr(e, "status_code", None)
                    if not scoped:
                        reason = e.message if isinstance(e, JiraApiError) else str(e)
                        raise EntityFetchFailed(name, reason, status_code) from e
                    counts.scope_failures += 1
                    counts.scope_errors.append(f"{scope}: {status_code or type(e).__name__}")
                    logger.warning(f"Could not sync {name} for {scope}: {e}")
        finally:
            db.close()

        logger.info(
            f"Synced {counts.upserted} {name} for account {account_id}"
            + (f" ({counts.skipped} skipped)" if counts.skipped else "")
        )
        return counts
