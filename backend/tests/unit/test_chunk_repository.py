"""Unit tests for PgChunkRepository against a recording AsyncSession stand-in."""

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import SQLAlchemyError

from app.domain.entities import ResourceChunk
from app.domain.exceptions import StorageError
from app.infrastructure.database.repositories import PgChunkRepository

DIMS = 4


class _Result:
    def __init__(self, rows=None, rowcount=0):
        self._rows = rows or []
        self.rowcount = rowcount

    def all(self):
        return self._rows


class _Savepoint:
    def __init__(self, session):
        self._session = session

    async def __aenter__(self):
        self._session.events.append("savepoint")
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self._session.events.append("rollback" if exc_type else "release")
        return False


class RecordingSession:
    """Records the statements, savepoints and flushes a repository issues."""

    def __init__(self, flush_error: Exception | None = None, rowcount: int = 0):
        self.events: list[str] = []
        self.statements = []
        self.added = []
        self._flush_error = flush_error
        self._rowcount = rowcount

    def begin_nested(self):
        return _Savepoint(self)

    async def execute(self, statement):
        self.events.append("execute")
        self.statements.append(statement)
        return _Result(rowcount=self._rowcount)

    def add_all(self, models):
        self.added.extend(models)

    async def flush(self):
        self.events.append("flush")
        if self._flush_error is not None:
            raise self._flush_error


def _chunk(index: int, resource_id: str = "res-1", dims: int = DIMS) -> ResourceChunk:
    return ResourceChunk(
        resource_id=resource_id,
        chunk_index=index,
        content=f"chunk {index}",
        embedding=[0.1] * dims,
        metadata={"index": index},
    )


def _sql(statement) -> str:
    return str(statement.compile(dialect=postgresql.dialect()))


# ── replace_chunks ───────────────────────────────────────────────────


async def test_replace_swaps_the_set_inside_a_savepoint():
    session = RecordingSession()
    repo = PgChunkRepository(session, dimensions=DIMS)

    stored = await repo.replace_chunks("res-1", [_chunk(1), _chunk(0), _chunk(2)])

    assert stored == 3
    assert session.events == ["savepoint", "execute", "execute", "flush", "release"]
    assert "pg_advisory_xact_lock" in _sql(session.statements[0])
    assert _sql(session.statements[1]).startswith("DELETE FROM resource_chunks")
    assert sorted(m.chunk_index for m in session.added) == [0, 1, 2]


async def test_replace_with_no_chunks_clears_the_set():
    session = RecordingSession()
    repo = PgChunkRepository(session, dimensions=DIMS)

    assert await repo.replace_chunks("res-1", []) == 0
    assert session.events == ["savepoint", "execute", "execute", "flush", "release"]
    assert session.added == []


async def test_failed_insert_rolls_back_the_savepoint():
    session = RecordingSession(flush_error=SQLAlchemyError("insert failed"))
    repo = PgChunkRepository(session, dimensions=DIMS)

    with pytest.raises(StorageError, match="insert failed"):
        await repo.replace_chunks("res-1", [_chunk(0), _chunk(1)])

    assert session.events[-1] == "rollback"
    assert "release" not in session.events


@pytest.mark.parametrize(
    "chunks",
    [
        [_chunk(0), _chunk(2)],
        [_chunk(1)],
        [_chunk(0), _chunk(0)],
        [_chunk(0), _chunk(1, dims=DIMS + 1)],
        [_chunk(0, resource_id="other")],
    ],
    ids=["gap", "not-from-zero", "duplicate", "wrong-width", "foreign-chunk"],
)
async def test_invalid_chunk_sets_are_rejected_before_any_write(chunks):
    session = RecordingSession()
    repo = PgChunkRepository(session, dimensions=DIMS)

    with pytest.raises(StorageError):
        await repo.replace_chunks("res-1", chunks)

    assert session.events == []
    assert session.added == []


# ── delete_by_resource ───────────────────────────────────────────────


async def test_delete_by_resource_reports_the_row_count():
    session = RecordingSession(rowcount=4)
    repo = PgChunkRepository(session, dimensions=DIMS)

    assert await repo.delete_by_resource("res-1") == 4
    sql = _sql(session.statements[0])
    assert sql.startswith("DELETE FROM resource_chunks")
    assert "resource_chunks.resource_id" in sql


# ── search_similar ───────────────────────────────────────────────────


async def test_search_is_scoped_to_the_module():
    session = RecordingSession()
    repo = PgChunkRepository(session, dimensions=DIMS)

    assert await repo.search_similar([0.5] * DIMS, module_id="physics", limit=3) == []

    sql = _sql(session.statements[0])
    assert "JOIN resources ON resources.id = resource_chunks.resource_id" in sql
    assert "WHERE resources.module_id = " in sql
    assert "<=>" in sql
    assert "LIMIT" in sql


async def test_search_without_module_is_unscoped():
    session = RecordingSession()
    repo = PgChunkRepository(session, dimensions=DIMS)

    await repo.search_similar([0.5] * DIMS, limit=3)

    assert "resources.module_id =" not in _sql(session.statements[0])


async def test_search_breaks_ties_deterministically():
    session = RecordingSession()
    repo = PgChunkRepository(session, dimensions=DIMS)

    await repo.search_similar([0.5] * DIMS, module_id="physics")

    order_by = _sql(session.statements[0]).split("ORDER BY", 1)[1]
    assert order_by.index("ASC") < order_by.index("resources.created_at ASC")
    assert "resources.created_at ASC, resources.id ASC, resource_chunks.chunk_index ASC" in order_by


async def test_search_rejects_a_query_of_the_wrong_width():
    session = RecordingSession()
    repo = PgChunkRepository(session, dimensions=DIMS)

    with pytest.raises(ValueError, match="dimensions"):
        await repo.search_similar([0.5] * (DIMS + 1))

    assert session.statements == []
