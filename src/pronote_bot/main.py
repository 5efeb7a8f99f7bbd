"""
Main orchestrator for Pronote Notification Bot.

Coordinates one synchronization cycle:
1. Login to Pronote
2. Check homeworks
3. Check marks
4. Check absent teachers
5. Logout

Each check notifies what is new and saves the snapshot before the next
one starts.
"""

import argparse
import logging
import sys
import threading
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from dateutil.tz import gettz

from pronote_bot import detector
from pronote_bot.auth import PronoteAuthError, PronoteFetchError, PronoteSession
from pronote_bot.config import Settings, get_settings, setup_logging
from pronote_bot.db import SnapshotStore, SnapshotStoreError
from pronote_bot.models import Notification, Snapshot
from pronote_bot.notify import MessageFormatter, NotifierGroup, build_notifiers
from pronote_bot.scheduler import run_forever

logger = logging.getLogger(__name__)


class PronoteMonitor:
    """
    Runs synchronization cycles.

    The snapshot is loaded at the start of every cycle and passed from
    one check to the next; each check returns the snapshot it saved.
    Only one cycle runs at a time.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[SnapshotStore] = None,
        notifiers: Optional[NotifierGroup] = None,
        session_factory: Optional[Callable[[], PronoteSession]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the monitor with all components.

        Args:
            settings: Settings, loaded from the environment if not provided
            store: Snapshot store, defaults to the configured cache file
            notifiers: Notification channels, built from settings if not provided
            session_factory: Creates a fresh Pronote session for each cycle
            clock: Returns the current time used for fetch windows
        """
        self.settings = settings or get_settings()
        self.store = store or SnapshotStore(self.settings.cache_file)
        self.notifiers = notifiers if notifiers is not None else build_notifiers(self.settings)
        self.session_factory = session_factory or (lambda: PronoteSession(self.settings))
        self.clock = clock or self._now
        self.formatter = MessageFormatter()
        self._cycle_lock = threading.Lock()
        self.stats = self._new_stats()

    def _now(self) -> datetime:
        """Current wall-clock time in the configured timezone, without tzinfo."""
        return datetime.now(gettz(self.settings.timezone)).replace(tzinfo=None)

    @staticmethod
    def _new_stats() -> dict:
        return {
            "homeworks_found": 0,
            "new_homeworks": 0,
            "subjects_found": 0,
            "changed_subjects": 0,
            "lessons_found": 0,
            "new_absences": 0,
            "notifications_sent": 0,
            "errors": 0,
        }

    @property
    def is_running(self) -> bool:
        """Whether a cycle is in progress."""
        return self._cycle_lock.locked()

    def run(self) -> bool:
        """
        Execute one synchronization cycle.

        Skipped when the previous cycle has not finished yet.

        Returns:
            bool: True if every check completed
        """
        if not self._cycle_lock.acquire(blocking=False):
            logger.warning("Previous cycle still running, skipping this one")
            return False

        try:
            return self._run_cycle()
        finally:
            self._cycle_lock.release()

    def _run_cycle(self) -> bool:
        self.stats = self._new_stats()
        logger.info("Starting Pronote synchronization")

        session = self.session_factory()
        try:
            session.login()
        except PronoteAuthError as e:
            logger.error(f"Pronote login failed: {e}")
            self.stats["errors"] += 1
            return False

        try:
            snapshot = self.store.load()
            now = self.clock()

            snapshot = self._process_homeworks(session, snapshot, now)
            snapshot = self._process_marks(session, snapshot)
            self._process_absences(session, snapshot, now)

        except PronoteAuthError as e:
            logger.error(f"Pronote session lost, cycle aborted: {e}")
            self.stats["errors"] += 1
            return False
        except PronoteFetchError as e:
            logger.error(f"Pronote fetch failed, cycle aborted: {e}")
            self.stats["errors"] += 1
            return False
        except SnapshotStoreError as e:
            logger.error(f"Snapshot write failed, cycle aborted: {e}")
            self.stats["errors"] += 1
            return False
        except Exception as e:
            logger.error(f"Cycle failed with error: {e}", exc_info=True)
            self.stats["errors"] += 1
            return False
        finally:
            self._release(session)

        self._log_summary()
        return True

    def _process_homeworks(
        self,
        session: PronoteSession,
        snapshot: Snapshot,
        now: datetime,
    ) -> Snapshot:
        """
        Notify new homeworks and store the fetched list.

        Args:
            session: Authenticated session
            snapshot: Snapshot at the start of the cycle
            now: Start of the fetch window

        Returns:
            Snapshot: Saved snapshot holding the fetched homeworks
        """
        end = now + timedelta(days=self.settings.homework_window_days)
        fetched = session.homeworks(now, end)
        new_homeworks = detector.new_homeworks(snapshot, fetched)
        self.stats["homeworks_found"] = len(fetched)
        self.stats["new_homeworks"] = len(new_homeworks)

        logger.info(f"Homeworks: {len(fetched)} total, {len(new_homeworks)} new")

        if detector.is_burst(new_homeworks, self.settings.burst_threshold):
            logger.info(
                f"{len(new_homeworks)} new homeworks is above the threshold "
                f"of {self.settings.burst_threshold}, not notifying"
            )
        else:
            for homework in new_homeworks:
                self._notify(self.formatter.format_homework(homework))

        snapshot = snapshot.model_copy(update={"homeworks": list(fetched)})
        self.store.save(snapshot)
        return snapshot

    def _process_marks(self, session: PronoteSession, snapshot: Snapshot) -> Snapshot:
        """
        Notify new marks of subjects whose average changed.

        Args:
            session: Authenticated session
            snapshot: Snapshot saved by the homework check

        Returns:
            Snapshot: Saved snapshot holding the fetched marks
        """
        fetched = session.marks(self.settings.marks_period)
        deltas = detector.changed_subjects(snapshot, fetched)
        self.stats["subjects_found"] = len(fetched.subjects)
        self.stats["changed_subjects"] = len(deltas)

        logger.info(
            f"Marks: {len(fetched.subjects)} subjects, "
            f"{len(deltas)} with a new average"
        )

        if detector.is_burst(deltas, self.settings.burst_threshold):
            logger.info(
                f"{len(deltas)} changed subjects is above the threshold "
                f"of {self.settings.burst_threshold}, not notifying"
            )
        else:
            for delta in deltas:
                for mark in delta.new_marks:
                    self._notify(self.formatter.format_mark(delta.subject, mark))

        snapshot = snapshot.model_copy(update={"marks": fetched})
        self.store.save(snapshot)
        return snapshot

    def _process_absences(
        self,
        session: PronoteSession,
        snapshot: Snapshot,
        now: datetime,
    ) -> Snapshot:
        """
        Notify every new absent teacher and remember the lessons.

        Args:
            session: Authenticated session
            snapshot: Snapshot saved by the marks check
            now: Start of the fetch window

        Returns:
            Snapshot: Saved snapshot with the new absences appended
        """
        end = now + timedelta(days=self.settings.absence_window_days)
        lessons = session.timetable(now, end)
        absences = detector.new_absences(snapshot, lessons)
        self.stats["lessons_found"] = len(lessons)
        self.stats["new_absences"] = len(absences)

        logger.info(f"Timetable: {len(lessons)} lessons, {len(absences)} new absences")

        for lesson in absences:
            self._notify(self.formatter.format_absence(lesson))

        lessons_away: List[str] = list(snapshot.lessons_away)
        lessons_away.extend(lesson.id for lesson in absences)
        snapshot = snapshot.model_copy(update={"lessons_away": lessons_away})
        self.store.save(snapshot)
        return snapshot

    @staticmethod
    def _release(session: PronoteSession) -> None:
        """Log out; a failure here does not affect the finished cycle."""
        try:
            session.logout()
        except Exception as e:
            logger.warning(f"Pronote logout failed: {e}")

    def _notify(self, notification: Notification) -> None:
        """Send a notification to every channel, never raising."""
        delivered = self.notifiers.send(notification)
        if delivered:
            self.stats["notifications_sent"] += 1
        logger.debug(
            f"Sent '{notification.title}' to {delivered}/{len(self.notifiers)} channels"
        )

    def _log_summary(self) -> None:
        """Log execution summary."""
        logger.info("=" * 50)
        logger.info("Synchronization Complete - Summary")
        logger.info("=" * 50)
        logger.info(f"Homeworks:            {self.stats['homeworks_found']} ({self.stats['new_homeworks']} new)")
        logger.info(f"Subjects:             {self.stats['subjects_found']} ({self.stats['changed_subjects']} changed)")
        logger.info(f"Lessons:              {self.stats['lessons_found']} ({self.stats['new_absences']} new absences)")
        logger.info(f"Notifications sent:   {self.stats['notifications_sent']}")
        logger.info(f"Errors:               {self.stats['errors']}")
        logger.info("=" * 50)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="pronote-bot",
        description="Send notifications for new Pronote homeworks, marks and absent teachers.",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="run a single synchronization cycle and exit",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Entry point for the Pronote Notification Bot.

    Returns:
        int: Exit code (0 for success, 1 for failure)
    """
    args = parse_args(argv)

    try:
        # Validate configuration early
        settings = get_settings()
    except Exception as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        print("Please check your environment variables.", file=sys.stderr)
        return 1

    setup_logging(settings)
    logger.debug(f"Loaded configuration for {settings.pronote_url}")

    monitor = PronoteMonitor(settings)

    if args.once:
        return 0 if monitor.run() else 1

    run_forever(monitor, settings)
    return 0


if __name__ == "__main__":
    sys.exit(main())
