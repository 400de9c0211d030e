"""Tests for config loading and the migration registry."""

import json
import os.path
from unittest.mock import MagicMock

import pytest
from sqlalchemy import select

from legacy_migrator.config import MigrationConfig, MigrationDefinitionConfig
from legacy_migrator.exceptions import ConfigurationError
from legacy_migrator.extractors.csv_extractor import CSVExtractor
from legacy_migrator.extractors.sql_extractor import SQLExtractor
from legacy_migrator.loaders.base import MemoryLoader
from legacy_migrator.loaders.sql_loader import SQLLoader
from legacy_migrator.models.migration import MigrationOptions, MigrationReport
from legacy_migrator.registry import MigrationDefinition, MigrationRegistry, import_string

from conftest import POST_ATTRIBUTES, map_post


def sample_config(**overrides):
    data = {
        "name": "blog",
        "source_url": "sqlite:///legacy.db",
        "target_url": "sqlite:///target.db",
        "migrations": {
            "posts": {
                "source_table": "legacy_posts",
                "target_table": "posts",
                "dedupe_keys": "external_id",
                "fields": {"external_id": "id", "title": {"source": "post_title", "transform": "strip"}},
            },
        },
    }
    data.update(overrides)
    return data


class TestMigrationConfig:

    def test_from_dict(self):
        config = MigrationConfig.from_dict(sample_config(), environ={})

        assert config.name == "blog"
        posts = config.migrations["posts"]
        assert posts.dedupe_keys == ["external_id"]
        assert posts.source_table == "legacy_posts"
        assert config.to_dict()["migrations"]["posts"]["target_table"] == "posts"

    def test_environment_overrides_urls(self):
        config = MigrationConfig.from_dict(sample_config(), environ={
            "LEGACY_DATABASE_URL": "postgresql://legacy",
            "TARGET_DATABASE_URL": "postgresql://target",
        })

        assert config.source_url == "postgresql://legacy"
        assert config.target_url == "postgresql://target"

    def test_reports_every_problem(self):
        data = sample_config(target_url="", migrations={
            "posts": {"source_table": "legacy_posts", "source_file": "posts.csv", "target_table": "posts"},
            "tags": {"source_table": "legacy_tags", "target_table": "", "mapper": "m:f", "fields": {"a": "b"}},
        })

        with pytest.raises(ConfigurationError) as exc_info:
            MigrationConfig.from_dict(data, environ={})

        message = str(exc_info.value)
        assert "target_url is required" in message
        assert "posts: exactly one of source_table or source_file" in message
        assert "posts: one of mapper, fields or helper" in message
        assert "tags: target_table is required" in message
        assert "tags: mapper and fields are mutually exclusive" in message

    def test_source_url_only_needed_for_tables(self):
        data = sample_config(source_url="", migrations={
            "posts": {"source_file": "posts.csv", "target_table": "posts", "fields": {"title": "title"}},
        })
        config = MigrationConfig.from_dict(data, environ={})
        assert config.source_url == ""

        data["migrations"]["posts"] = {"source_table": "legacy_posts", "target_table": "posts",
                                       "fields": {"title": "title"}}
        with pytest.raises(ConfigurationError, match="source_url"):
            MigrationConfig.from_dict(data, environ={})

    def test_no_migrations(self):
        with pytest.raises(ConfigurationError, match="at least one migration"):
            MigrationConfig.from_dict(sample_config(migrations={}), environ={})

    def test_malformed_entries(self):
        with pytest.raises(ConfigurationError):
            MigrationConfig.from_dict(["not", "a", "dict"], environ={})
        with pytest.raises(ConfigurationError):
            MigrationConfig.from_dict(sample_config(migrations=["posts"]), environ={})
        with pytest.raises(ConfigurationError):
            MigrationDefinitionConfig.from_dict("posts", "legacy_posts")

    def test_from_json_file(self, tmp_path):
        path = tmp_path / "migration.json"
        path.write_text(json.dumps(sample_config()))

        config = MigrationConfig.from_json_file(path, environ={})
        assert list(config.migrations) == ["posts"]

        with pytest.raises(ConfigurationError, match="not found"):
            MigrationConfig.from_json_file(tmp_path / "missing.json")

        path.write_text("{")
        with pytest.raises(ConfigurationError, match="Invalid JSON"):
            MigrationConfig.from_json_file(path)


class TestMigrationRegistry:

    def test_register_and_run(self, memory_source, memory_writer):
        registry = MigrationRegistry()
        registry.register("posts", memory_source, memory_writer, mapper=map_post,
                          label="blog posts", dedupe_keys=["external_id"])

        first = registry.run("posts", MigrationOptions(limit=10))
        second = registry.run("posts")

        assert first.label == "blog posts"
        assert first.created == 10
        assert second.skipped == 10
        assert second.created == 240
        assert "posts" in registry
        assert len(registry) == 1

    def test_options_take_precedence(self, memory_source, memory_writer):
        definition = MigrationDefinition("posts", memory_source, memory_writer, mapper=map_post,
                                         label="blog posts", dedupe_keys=("external_id",))

        options = definition.resolve_options(MigrationOptions(label="posts (batch 2)", dedupe_keys=("title",)))

        assert options.label == "posts (batch 2)"
        assert options.dedupe_keys == ("title",)
        assert definition.resolve_options(None) == MigrationOptions(label="blog posts",
                                                                    dedupe_keys=("external_id",))

    def test_unknown_kind(self):
        registry = MigrationRegistry()
        with pytest.raises(ConfigurationError, match="comments"):
            registry.run("comments")

    def test_register_requires_mapper_or_helper(self, memory_source, memory_writer):
        with pytest.raises(ConfigurationError):
            MigrationRegistry().register("posts", memory_source, memory_writer)

    def test_kinds_keep_registration_order(self, memory_source, memory_writer):
        registry = MigrationRegistry()
        for kind in ["users", "posts", "comments"]:
            registry.register(kind, memory_source, memory_writer, mapper=map_post)
        assert registry.kinds == ["users", "posts", "comments"]

    def test_run_time_helper_override(self, memory_source, memory_writer):
        registry = MigrationRegistry()
        registry.register("posts", memory_source, memory_writer, mapper=map_post)
        seen = []

        def helper(runner, options):
            seen.append(runner.kind)
            return MigrationReport(label="posts").finalize()

        registry.run("posts", helper_override=helper)

        assert seen == ["posts"]
        assert memory_writer.rows == {}

    def test_run_time_mapper_override(self, memory_source):
        writer = MemoryLoader("posts", attributes=POST_ATTRIBUTES)
        registry = MigrationRegistry()
        registry.register("posts", memory_source, writer, mapper=map_post)

        registry.run("posts", MigrationOptions(limit=1), mapper=lambda r: {"title": "override"})

        assert list(writer.rows.values()) == [{"title": "override"}]


class TestRegistryFromConfig:

    def test_builds_sql_migrations(self, database_urls):
        legacy_url, target_url = database_urls
        config = MigrationConfig.from_dict(
            sample_config(source_url=legacy_url, target_url=target_url), environ={}
        )

        registry = MigrationRegistry.from_config(config)
        try:
            definition = registry.get("posts")
            assert isinstance(definition.source, SQLExtractor)
            assert isinstance(definition.writer, SQLLoader)

            report = registry.run("posts")
            rerun = registry.run("posts")

            assert report.created == 12
            assert rerun.skipped == 12
            with definition.writer.engine.connect() as conn:
                titles = conn.execute(select(definition.writer.table.c.title)).scalars().all()
            assert titles[0] == "Post 1"
        finally:
            registry.dispose()

    def test_dry_run_override(self, database_urls):
        legacy_url, target_url = database_urls
        config = MigrationConfig.from_dict(
            sample_config(source_url=legacy_url, target_url=target_url), environ={}
        )

        registry = MigrationRegistry.from_config(config, dry_run=True)
        try:
            report = registry.run("posts")
            assert report.dry_run is True
            assert report.created == 12
            assert registry.get("posts").writer.find_ids({"external_id": 1}) == []
        finally:
            registry.dispose()

    def test_file_source(self, tmp_path, database_urls):
        _, target_url = database_urls
        export = tmp_path / "posts.jsonl"
        export.write_text('{"legacy_id": 5, "title": "From export"}\n')
        config = MigrationConfig.from_dict({
            "target_url": target_url,
            "migrations": {"posts": {
                "source_file": str(export),
                "id_column": "legacy_id",
                "target_table": "posts",
                "fields": {"external_id": "legacy_id", "title": "title"},
            }},
        }, environ={})

        registry = MigrationRegistry.from_config(config)
        try:
            assert isinstance(registry.get("posts").source, CSVExtractor)
            report = registry.run("posts")
            assert report.created == 1
        finally:
            registry.dispose()

    def test_invalid_database_url(self):
        config = MigrationConfig.from_dict(
            sample_config(source_url="not a url", target_url="sqlite://"), environ={}
        )
        with pytest.raises(ConfigurationError, match="Invalid database URL"):
            MigrationRegistry.from_config(config)

    def test_mapper_import_path(self):
        config = MigrationConfig.from_dict(sample_config(migrations={
            "posts": {"source_table": "legacy_posts", "target_table": "posts", "mapper": "no_such_module:map"},
        }), environ={})
        with pytest.raises(ConfigurationError, match="no_such_module"):
            MigrationRegistry.from_config(config)

    def test_engines_disposed_when_a_later_kind_fails(self, monkeypatch):
        engines = []

        def fake_create_engine(url):
            engines.append(MagicMock(name=url))
            return engines[-1]

        monkeypatch.setattr("legacy_migrator.registry.create_engine", fake_create_engine)
        config = MigrationConfig.from_dict(sample_config(migrations={
            "posts": {"source_table": "legacy_posts", "target_table": "posts", "fields": {"title": "post_title"}},
            "tags": {"source_table": "legacy_tags", "target_table": "tags", "mapper": "no_such_module:map"},
        }), environ={})

        with pytest.raises(ConfigurationError, match="no_such_module"):
            MigrationRegistry.from_config(config)

        assert len(engines) == 2
        for engine in engines:
            engine.dispose.assert_called_once_with()


class TestImportString:

    def test_colon_and_dotted_paths(self):
        assert import_string("os.path:join") is os.path.join
        assert import_string("os.path.join") is os.path.join
        assert import_string("json:decoder.JSONDecoder") is json.decoder.JSONDecoder

    def test_errors(self):
        with pytest.raises(ConfigurationError):
            import_string("join")
        with pytest.raises(ConfigurationError):
            import_string("os.path:no_such_function")
