"""Tests for artifact factories, CSV export and the system log book."""

import csv
import io
from datetime import timedelta
from pathlib import Path

import pytest

from insight_store.models import ArtifactKind, IssueStatus, Outcome, SearchMode, StoreConfig
from insight_store.services import IssueBook, SystemLogBook, export_vault_csv, write_vault_csv
from insight_store.services import artifacts as factories
from insight_store.services.system_log import ISSUES_CACHE_KEY, LOGS_CACHE_KEY
from insight_store.storage import ArtifactVault, ExpiringCache, MemorySubstrate

CHANNEL = {
    "id": "UC123",
    "name": "Camp Life",
    "thumbnailUrl": "https://img.example/c.jpg",
    "subscriberCount": 125000,
    "totalVideos": 342,
}
VIDEO = {
    "id": "abc123",
    "title": "Winter camping",
    "thumbnailUrl": "",
    "viewCount": 1000000,
    "likeCount": 5400,
}


class TestArtifactFactories:
    """Producers build Artifacts from already-fetched data."""

    def test_channel(self):
        artifact = factories.channel_artifact(CHANNEL)
        assert artifact.id == "channel_UC123"
        assert artifact.kind is ArtifactKind.CHANNEL
        assert artifact.metric_primary == "Subscribers 125,000"
        assert artifact.metric_secondary == "Videos 342"
        assert artifact.external_url == "https://www.youtube.com/channel/UC123"
        assert artifact.payload == CHANNEL

    def test_video_blank_thumbnail_is_none(self):
        artifact = factories.video_artifact(VIDEO)
        assert artifact.id == "video_abc123"
        assert artifact.thumbnail_ref is None
        assert artifact.external_url == "https://www.youtube.com/watch?v=abc123"

    def test_stable_ids_replace_in_vault(self, substrate, clock):
        vault = ArtifactVault(substrate, StoreConfig(), clock=clock)
        vault.upsert(factories.channel_artifact(CHANNEL))
        vault.upsert(factories.channel_artifact({**CHANNEL, "subscriberCount": 130000}))
        (item,) = vault.list()
        assert item.metric_primary == "Subscribers 130,000"

    def test_reports_get_unique_ids(self, clock):
        first = factories.trend_artifact("Korea", ["a"], ["b", "c"], "summary", now=clock())
        second = factories.trend_artifact(
            "Korea", ["a"], ["b", "c"], "summary", now=clock.advance(seconds=1)
        )
        assert first.id != second.id
        assert first.kind is ArtifactKind.TREND
        assert first.metric_secondary == "2 Google keywords"
        assert first.external_url.endswith("geo=KR")

    def test_outlier_urls_depend_on_mode(self, clock):
        videos = [{"thumbnailUrl": "https://img.example/1.jpg"}]
        keyword = factories.outlier_artifact("camp stove", SearchMode.KEYWORD, videos, 3.5, clock())
        channel = factories.outlier_artifact("camp stove", SearchMode.CHANNEL, videos, 3.5, clock())
        assert "results?search_query=camp+stove" in keyword.external_url
        assert "search?q=camp+stove" in channel.external_url
        assert keyword.thumbnail_ref == "https://img.example/1.jpg"
        assert keyword.metric_primary == "1 videos analyzed"

    def test_other_kinds(self, clock):
        thumb = factories.thumbnail_strategy_artifact("camp", {"score": 9}, clock())
        algo = factories.algorithm_diagnosis_artifact(
            {"profile": {"keyword": "camp", "category": "Travel"}, "score": 82,
             "statusMessage": "Good fit"},
            clock(),
        )
        mine = factories.my_channel_artifact(
            {"name": "Me", "kpi": {"viewsLast30d": 12000, "ctrLast30d": 4.2}}, clock()
        )
        assert thumb.kind is ArtifactKind.THUMBNAIL_STRATEGY
        assert algo.kind is ArtifactKind.ALGORITHM_DIAGNOSIS
        assert algo.title == "DNA diagnosis: camp (Travel)"
        assert algo.external_url is None
        assert mine.kind is ArtifactKind.MY_CHANNEL
        assert mine.metric_secondary == "CTR 4.2%"


class TestExport:
    """CSV export of the active vault."""

    @pytest.fixture
    def vault(self, substrate, clock) -> ArtifactVault:
        vault = ArtifactVault(substrate, StoreConfig(), clock=clock)
        vault.upsert(factories.channel_artifact(CHANNEL))
        clock.advance(minutes=5)
        vault.upsert(factories.video_artifact({**VIDEO, "title": 'Say "hi", world'}))
        vault.upsert(factories.video_artifact({**VIDEO, "id": "gone"}))
        vault.soft_delete("video_gone")
        return vault

    def test_rows_newest_first_active_only(self, vault: ArtifactVault):
        buffer = io.StringIO()
        assert write_vault_csv(vault, buffer) == 2
        rows = list(csv.reader(io.StringIO(buffer.getvalue())))
        assert rows[0][0] == "kind"
        assert [row[-1] for row in rows[1:]] == ["video_abc123", "channel_UC123"]
        assert rows[1][1] == 'Say "hi", world'

    def test_file_has_bom(self, vault: ArtifactVault, tmp_path: Path):
        path = tmp_path / "out" / "vault.csv"
        assert export_vault_csv(vault, path) == 2
        assert path.read_bytes().startswith(b"\xef\xbb\xbf")

    def test_empty_vault_writes_header(self, substrate, clock):
        buffer = io.StringIO()
        empty = ArtifactVault(substrate, StoreConfig(), clock=clock)
        assert write_vault_csv(empty, buffer) == 0
        assert buffer.getvalue().strip().startswith("kind,title")


class TestSystemLogBook:
    """System log stored through the timestamping cache."""

    @pytest.fixture
    def book(self, substrate, clock) -> SystemLogBook:
        return SystemLogBook(ExpiringCache(substrate, "system", clock=clock), limit=3, clock=clock)

    def test_seeds_initial_entry(self, book: SystemLogBook):
        (entry,) = book.entries()
        assert entry.user == "system"
        assert entry.action == "System Initialized"

    def test_add_prepends(self, book: SystemLogBook, clock):
        clock.advance(minutes=1)
        book.add("admin", "Issue #1 Resolved")
        entries = book.entries()
        assert [e.action for e in entries] == ["Issue #1 Resolved", "System Initialized"]
        assert entries[0].time == clock()

    def test_limit(self, book: SystemLogBook):
        for i in range(5):
            book.add("cli", f"action {i}")
        assert [e.action for e in book.entries()] == ["action 4", "action 3", "action 2"]

    def test_entries_never_expire(self, book: SystemLogBook, clock):
        book.add("cli", "kept")
        clock.advance(days=400)
        assert book.entries()[0].action == "kept"

    def test_unreadable_log_is_reseeded(self, substrate, clock):
        cache = ExpiringCache(substrate, "system", clock=clock)
        cache.put(LOGS_CACHE_KEY, [{"unexpected": True}])
        book = SystemLogBook(cache, clock=clock)
        assert [e.action for e in book.entries()] == ["System Initialized"]

    def test_timestamp_without_timezone_is_reseeded(self, substrate, clock):
        cache = ExpiringCache(substrate, "system", clock=clock)
        cache.put(
            LOGS_CACHE_KEY,
            [{"time": "2026-03-01T00:00:00", "user": "cli", "action": "old"}],
        )
        book = SystemLogBook(cache, clock=clock)
        assert [e.action for e in book.entries()] == ["System Initialized"]

    def test_write_failure(self, clock):
        cache = ExpiringCache(MemorySubstrate(quota_bytes=50), "system", clock=clock)
        book = SystemLogBook(cache, clock=clock)
        assert book.add("cli", "too big to store") is False
        assert cache.get(LOGS_CACHE_KEY, timedelta(days=1)) is None


class TestIssueBook:
    """Reported issues stored next to the system log."""

    @pytest.fixture
    def log_book(self, substrate, clock) -> SystemLogBook:
        return SystemLogBook(ExpiringCache(substrate, "system", clock=clock), clock=clock)

    @pytest.fixture
    def issues(self, substrate, clock, log_book) -> IssueBook:
        return IssueBook(ExpiringCache(substrate, "system", clock=clock), log_book, clock=clock)

    def test_seeds_demo_issue(self, issues: IssueBook, substrate):
        (issue,) = issues.issues()
        assert issue.id == 1
        assert issue.status is IssueStatus.PENDING
        assert f"cache:system:{ISSUES_CACHE_KEY}" in substrate.keys()

    def test_report_takes_next_id(self, issues: IssueBook, clock):
        first = issues.report("a@example.com", "Trends page is empty")
        second = issues.report("b@example.com", "Export has no rows")
        assert (first.id, second.id) == (2, 3)
        assert second.time == clock()
        assert [i.id for i in issues.issues()] == [3, 2, 1]

    def test_report_is_logged(self, issues: IssueBook, log_book: SystemLogBook):
        issues.report("a@example.com", "Trends page is empty")
        latest = log_book.entries()[0]
        assert (latest.user, latest.action) == ("a@example.com", "Issue Reported")

    def test_resolve(self, issues: IssueBook, log_book: SystemLogBook):
        issue = issues.report("a@example.com", "Trends page is empty")
        assert issues.resolve(issue.id) is Outcome.OK
        statuses = {i.id: i.status for i in issues.issues()}
        assert statuses == {2: IssueStatus.RESOLVED, 1: IssueStatus.PENDING}
        latest = log_book.entries()[0]
        assert (latest.user, latest.action) == ("admin", "Issue #2 Resolved")

    def test_resolve_unknown(self, issues: IssueBook, log_book: SystemLogBook):
        assert issues.resolve(99) is Outcome.NOT_FOUND
        assert [e.action for e in log_book.entries()] == ["System Initialized"]

    def test_ids_follow_the_highest(self, issues: IssueBook, substrate, clock):
        cache = ExpiringCache(substrate, "system", clock=clock)
        cache.put(
            ISSUES_CACHE_KEY,
            [{"id": 7, "time": "2026-03-01T00:00:00Z", "user": "u", "message": "m"}],
        )
        assert issues.report("u", "again").id == 8
