"""
The system log and the reported-issues list shown on the admin screen, both kept in
the `system` cache.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from pydantic import TypeAdapter, ValidationError

from insight_store.models.records import (
    IssueStatus,
    Outcome,
    ReportedIssue,
    SystemLogEntry,
    utc_now,
)
from insight_store.storage.cache import ExpiringCache

log = logging.getLogger(__name__)

LOGS_CACHE_KEY = "system_logs"
ISSUES_CACHE_KEY = "reported_issues"

_LOGS_ADAPTER = TypeAdapter(list[SystemLogEntry])
_ISSUES_ADAPTER = TypeAdapter(list[ReportedIssue])

# Seeded into an empty issue list.
DEMO_ISSUE = ReportedIssue(
    id=1,
    time=datetime(2026, 2, 21, 1, 25, 10, tzinfo=timezone.utc),
    user="demo@user.com",
    message="Channel analysis from the popularity chart does not work.",
)


class SystemLogBook:
    """
    Newest-first list of system events. Entries are stored through `get_raw`/`put`
    so they get a timestamp but are never evicted by age.
    """

    def __init__(
        self,
        cache: ExpiringCache,
        limit: int = 50,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._cache = cache
        self.limit = limit
        self._clock = clock

    def entries(self) -> list[SystemLogEntry]:
        """Returns the log, seeding it with an initialization entry on first use."""
        cached = self._cache.get_raw(LOGS_CACHE_KEY)
        if cached is not None:
            try:
                return _LOGS_ADAPTER.validate_python(cached.value)
            except ValidationError as e:
                log.warning(f"Discarding unreadable system log: {e.error_count()} error(s)")

        initial = [
            SystemLogEntry(
                time=self._clock(), user="system", action="System Initialized"
            )
        ]
        self._save(initial)
        return initial

    def add(self, user: str, action: str, status: str = "Success") -> bool:
        entry = SystemLogEntry(time=self._clock(), user=user, action=action, status=status)
        return self._save([entry, *self.entries()][: self.limit])

    def _save(self, entries: list[SystemLogEntry]) -> bool:
        return self._cache.put(LOGS_CACHE_KEY, _LOGS_ADAPTER.dump_python(entries, mode="json"))


class IssueBook:
    """
    Newest-first list of user-reported problems. Reporting and resolving an issue
    each leave a line in the system log.
    """

    def __init__(
        self,
        cache: ExpiringCache,
        log_book: SystemLogBook,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._cache = cache
        self._log_book = log_book
        self._clock = clock

    def issues(self) -> list[ReportedIssue]:
        """Returns every issue, seeding the list with a demo report on first use."""
        cached = self._cache.get_raw(ISSUES_CACHE_KEY)
        if cached is not None:
            try:
                return _ISSUES_ADAPTER.validate_python(cached.value)
            except ValidationError as e:
                log.warning(f"Discarding unreadable issue list: {e.error_count()} error(s)")

        initial = [DEMO_ISSUE.model_copy()]
        self._save(initial)
        return initial

    def report(self, user: str, message: str) -> ReportedIssue | None:
        """
        Files a new pending issue with the next free id.

        Returns the issue, or None if it could not be stored.
        """
        issues = self.issues()
        issue = ReportedIssue(
            id=max((i.id for i in issues), default=0) + 1,
            time=self._clock(),
            user=user,
            message=message,
        )
        if not self._save([issue, *issues]):
            return None
        self._log_book.add(user, "Issue Reported")
        return issue

    def resolve(self, issue_id: int) -> Outcome:
        """Marks an issue as resolved. Resolving it again is a no-op that still succeeds."""
        issues = self.issues()
        for index, issue in enumerate(issues):
            if issue.id == issue_id:
                break
        else:
            return Outcome.NOT_FOUND

        if issue.status is IssueStatus.RESOLVED:
            return Outcome.OK
        issues[index] = issue.model_copy(update={"status": IssueStatus.RESOLVED})
        if not self._save(issues):
            return Outcome.WRITE_FAILED
        self._log_book.add("admin", f"Issue #{issue_id} Resolved")
        return Outcome.OK

    def _save(self, issues: list[ReportedIssue]) -> bool:
        return self._cache.put(
            ISSUES_CACHE_KEY, _ISSUES_ADAPTER.dump_python(issues, mode="json")
        )
