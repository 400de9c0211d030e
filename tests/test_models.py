"""Tests for record and report models."""

from datetime import timezone

import pytest

from legacy_migrator.exceptions import ConfigurationError, MappingError, WriteError
from legacy_migrator.models.migration import MigrationOptions, MigrationReport, MigrationStatus
from legacy_migrator.models.record import MigrationOutcome, OutcomeStatus, RawRecord


class TestRawRecord:

    def test_get_handles_missing_and_null(self):
        record = RawRecord(id="1", data={"title": "Hello", "body": None})

        assert record.get("title") == "Hello"
        assert record.get("body", "n/a") == "n/a"
        assert record.get("missing", "n/a") == "n/a"
        assert record["body"] is None
        assert "body" in record

    def test_get_dotted_path(self):
        record = RawRecord(id="1", data={"author": {"name": "Ann", "tags": ["a", "b"]}})

        assert record.get("author.name") == "Ann"
        assert record.get("author.tags.1") == "b"
        assert record.get("author.tags.5") is None
        assert record.get("author.name.first") is None

    def test_data_is_read_only(self):
        source = {"title": "Hello"}
        record = RawRecord(id="1", data=source)

        with pytest.raises(TypeError):
            record.data["title"] = "Changed"
        source["title"] = "Changed"
        assert record["title"] == "Hello"

    def test_to_dict(self):
        record = RawRecord(id="3", data={"a": 1}, source_name="legacy_posts")
        assert record.to_dict() == {"id": "3", "source_name": "legacy_posts", "data": {"a": 1}}


class TestMigrationOptions:

    def test_defaults(self):
        options = MigrationOptions()
        assert options.offset == 0
        assert options.limit is None
        assert options.label is None
        assert options.dedupe_keys == ()

    @pytest.mark.parametrize("kwargs", [
        {"offset": -1},
        {"offset": 1.5},
        {"offset": True},
        {"limit": -5},
        {"limit": "10"},
        {"label": 42},
        {"dedupe_keys": ("",)},
        {"dedupe_keys": (1,)},
    ])
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ConfigurationError):
            MigrationOptions(**kwargs)

    def test_dedupe_keys_normalized(self):
        assert MigrationOptions(dedupe_keys="externalId").dedupe_keys == ("externalId",)
        assert MigrationOptions(dedupe_keys=None).dedupe_keys == ()
        assert MigrationOptions(dedupe_keys=["b", "a", "b"]).dedupe_keys == ("b", "a")

    def test_limit_zero_allowed(self):
        assert MigrationOptions(limit=0).limit == 0

    def test_frozen(self):
        options = MigrationOptions()
        with pytest.raises(AttributeError):
            options.offset = 10

    def test_from_dict(self):
        options = MigrationOptions.from_dict({"offset": 5, "limit": 10, "dedupe_keys": ["slug"]})
        assert options == MigrationOptions(offset=5, limit=10, dedupe_keys=("slug",))
        assert options.to_dict() == {"offset": 5, "limit": 10, "label": None, "dedupe_keys": ["slug"]}


class TestMigrationOutcome:

    def test_failure_type_follows_error(self):
        mapping = MigrationOutcome.failed("1", MappingError("bad"))
        write = MigrationOutcome.failed("2", WriteError("rejected"))

        assert mapping.status == OutcomeStatus.FAILED
        assert mapping.to_failure().error_type == "mapping"
        assert write.to_failure().error_type == "write"
        assert write.to_failure().message == "rejected"


class TestMigrationReport:

    def test_counts_and_summary(self):
        report = MigrationReport(label="posts")
        report.extend([
            MigrationOutcome.created("1", "10"),
            MigrationOutcome.created("2", "11"),
            MigrationOutcome.skipped("3", "duplicate"),
            MigrationOutcome.failed("4", MappingError("no title")),
        ])

        assert report.created == 2
        assert report.skipped == 1
        assert report.failed == 1
        assert report.total_visited == 4
        assert report.skip_reasons == {"duplicate": 1}
        assert [f.record_id for f in report.failures] == ["4"]
        assert report.summary() == "Migrated 2 of 4 posts, 1 skipped, 1 failed"
        assert str(report) == report.summary()

    def test_summary_without_skips(self):
        report = MigrationReport(label="posts")
        report.add_outcome(MigrationOutcome.created("1"))
        assert report.summary() == "Migrated 1 of 1 posts, 0 failed"

    def test_finalize_freezes_report(self):
        report = MigrationReport(label="posts")
        report.add_outcome(MigrationOutcome.created("1"))

        assert report.finalize() is report
        assert report.status == MigrationStatus.COMPLETED
        assert report.finalized
        assert report.completed_at is not None
        assert report.started_at.tzinfo is timezone.utc
        assert report.completed_at.tzinfo is timezone.utc
        assert report.duration_seconds >= 0

        with pytest.raises(RuntimeError):
            report.add_outcome(MigrationOutcome.created("2"))
        with pytest.raises(RuntimeError):
            report.status = MigrationStatus.RUNNING
        with pytest.raises(RuntimeError):
            report.finalize()
        assert report.created == 1

    def test_failures_are_a_snapshot(self):
        report = MigrationReport(label="posts")
        report.add_outcome(MigrationOutcome.failed("1", MappingError("x")))

        failures = report.failures
        report.add_outcome(MigrationOutcome.failed("2", MappingError("y")))

        assert len(failures) == 1
        assert len(report.failures) == 2

    def test_to_dict(self):
        report = MigrationReport(label="posts", dry_run=True)
        report.add_outcome(MigrationOutcome.failed("9", WriteError("duplicate key")))
        data = report.finalize(MigrationStatus.CANCELLED).to_dict()

        assert data["status"] == "cancelled"
        assert data["dry_run"] is True
        assert data["failures"] == [{"record_id": "9", "error_type": "write", "message": "duplicate key"}]
        assert data["summary"] == "Migrated 0 of 1 posts, 1 failed (cancelled)"
