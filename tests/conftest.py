"""Shared fixtures: legacy/target stores and a sample post mapper."""

from typing import Any, Dict, List

import pytest
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    insert,
)

from legacy_migrator.extractors.base import MemoryExtractor
from legacy_migrator.loaders.base import MemoryLoader
from legacy_migrator.models.record import RawRecord

POST_ATTRIBUTES = {"external_id", "title", "body", "published"}


def make_rows(count: int) -> List[Dict[str, Any]]:
    return [
        {
            "id": i,
            "post_title": f"  Post {i} ",
            "body": f"Body of post {i}",
            "author_email": f"author{i % 7}@example.com",
            "created": f"2009-0{1 + i % 9}-1{i % 10}",
            "published": i % 2,
        }
        for i in range(1, count + 1)
    ]


def map_post(record: RawRecord) -> Dict[str, Any]:
    return {
        "external_id": record["id"],
        "title": record["post_title"].strip(),
        "body": record.get("body"),
        "published": bool(record.get("published")),
    }


@pytest.fixture
def legacy_rows() -> List[Dict[str, Any]]:
    return make_rows(250)


@pytest.fixture
def memory_source(legacy_rows) -> MemoryExtractor:
    return MemoryExtractor(legacy_rows, name="legacy_posts")


@pytest.fixture
def memory_writer() -> MemoryLoader:
    return MemoryLoader("posts", attributes=POST_ATTRIBUTES)


@pytest.fixture
def legacy_engine(legacy_rows):
    """In-memory SQLite legacy database with 250 legacy_posts rows."""
    engine = create_engine("sqlite://")
    metadata = MetaData()
    table = Table(
        "legacy_posts",
        metadata,
        Column("id", Integer, primary_key=True),
        Column("post_title", String(200)),
        Column("body", Text),
        Column("author_email", String(200)),
        Column("created", String(20)),
        Column("published", Integer),
    )
    metadata.create_all(engine)
    with engine.begin() as conn:
        # Insert in reverse so physical order differs from key order
        conn.execute(insert(table), list(reversed(legacy_rows)))
    yield engine
    engine.dispose()


@pytest.fixture
def target_engine():
    """In-memory SQLite target database with an empty posts table."""
    engine = create_engine("sqlite://")
    metadata = MetaData()
    Table(
        "posts",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("external_id", Integer),
        Column("title", String(200), nullable=False),
        Column("body", Text),
        Column("published", Boolean),
        Column("created_at", DateTime),
    )
    metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def database_urls(tmp_path):
    """File-backed SQLite legacy and target databases; returns their URLs."""
    legacy_url = f"sqlite:///{tmp_path / 'legacy.db'}"
    target_url = f"sqlite:///{tmp_path / 'target.db'}"

    legacy = create_engine(legacy_url)
    metadata = MetaData()
    legacy_posts = Table(
        "legacy_posts",
        metadata,
        Column("id", Integer, primary_key=True),
        Column("post_title", String(200)),
    )
    metadata.create_all(legacy)
    with legacy.begin() as conn:
        conn.execute(
            insert(legacy_posts),
            [{"id": row["id"], "post_title": row["post_title"]} for row in make_rows(12)],
        )
    legacy.dispose()

    target = create_engine(target_url)
    metadata = MetaData()
    Table(
        "posts",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("external_id", Integer),
        Column("title", String(200), nullable=False),
    )
    metadata.create_all(target)
    target.dispose()

    return legacy_url, target_url
