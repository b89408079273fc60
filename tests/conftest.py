import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import IntegrityError


class FakeRawStore:
    """In-memory stand-in for the S3 raw event store"""

    def __init__(self):
        self.objects = {}
        self.fail_with = None

    def put(self, key, body):
        if self.fail_with is not None:
            raise self.fail_with
        self.objects[key] = body


class FakeRecordStore:
    """In-memory stand-in for the DynamoDB record store"""

    def __init__(self):
        self.items = {}
        self.fail_with = None

    def put(self, item):
        if self.fail_with is not None:
            raise self.fail_with
        self.items[item["eventId"]] = item


class FakeResult:
    def __init__(self, rows):
        self.rows = rows

    def fetchall(self):
        return self.rows


class FakeConnection:
    def __init__(self, engine):
        self.engine = engine

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def execute(self, stmt):
        self.engine.statements.append(stmt)
        if self.engine.fail_with is not None:
            raise self.engine.fail_with

        if getattr(stmt, "is_insert", False):
            params = stmt.compile(dialect=postgresql.dialect()).params
            event_type = params["event_type"]
            if event_type is None:
                raise IntegrityError(
                    "INSERT INTO event_counts ...",
                    params,
                    Exception('null value in column "event_type" violates not-null constraint')
                )
            self.engine.counts[event_type] = self.engine.counts.get(event_type, 0) + 1
            return FakeResult([])

        if getattr(stmt, "is_select", False):
            rows = sorted(self.engine.counts.items(), key=lambda kv: (-kv[1], kv[0]))
            limit = stmt._limit
            return FakeResult(rows[:limit] if limit is not None else rows)

        return FakeResult([])


class FakeEngine:
    """Interprets the counter statements against a dict"""

    def __init__(self):
        self.counts = {}
        self.statements = []
        self.fail_with = None
        self.disposed = False

    def begin(self):
        return FakeConnection(self)

    def connect(self):
        return FakeConnection(self)

    async def dispose(self):
        self.disposed = True


class FakeCounterDatabase:
    """Counter database handle that connects to a FakeEngine"""

    def __init__(self):
        self.fake_engine = FakeEngine()
        self.connect_error = None
        self.connect_calls = 0
        self._connected = False

    @property
    def is_connected(self):
        return self._connected

    async def connect(self):
        self.connect_calls += 1
        if self.connect_error is not None:
            raise self.connect_error
        self._connected = True
        return self.fake_engine

    async def close(self):
        self._connected = False


class RecordingLogger:
    """Collects (level, event, fields) tuples"""

    def __init__(self):
        self.records = []

    def _log(self, level, event, **kw):
        self.records.append((level, event, kw))

    def info(self, event, **kw):
        self._log("info", event, **kw)

    def warning(self, event, **kw):
        self._log("warning", event, **kw)

    def error(self, event, **kw):
        self._log("error", event, **kw)

    def events(self, level=None):
        return [event for lvl, event, _ in self.records if level is None or lvl == level]


class FakeSecretStore:
    def __init__(self, credentials):
        self.credentials = credentials
        self.calls = 0
        self.fail_with = None

    def get_database_credentials(self, secret_id):
        self.calls += 1
        if self.fail_with is not None:
            raise self.fail_with
        return self.credentials


@pytest.fixture
def raw_store():
    return FakeRawStore()


@pytest.fixture
def record_store():
    return FakeRecordStore()


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def counter_db():
    return FakeCounterDatabase()


@pytest.fixture
def recording_logger():
    return RecordingLogger()


@pytest.fixture
def secret_store():
    from app.services.secrets import DatabaseCredentials
    return FakeSecretStore(DatabaseCredentials(username="ingest", password="s3cret"))
