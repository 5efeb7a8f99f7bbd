from __future__ import annotations

import threading
from datetime import datetime, timedelta

from conftest import NOW, FakeSession
from pronote_bot.auth import PronoteFetchError
from pronote_bot.db import SnapshotStoreError
from pronote_bot.main import PronoteMonitor
from pronote_bot.models import Homework, Lesson, Mark, Marks, MarksPeriod, Snapshot, Subject
from pronote_bot.notify.base import NotifierGroup


def _math(average, mark_ids):
    return Subject(
        name="Math",
        student_average=average,
        marks=[Mark(id=i, value="16", scale="20", average="11") for i in mark_ids],
    )


def test_end_to_end_cycle(store, recorder, make_monitor):
    store.save(Snapshot(
        homeworks=[Homework(description="A")],
        marks=Marks(subjects=[_math(12, [1])]),
    ))
    session = FakeSession(
        homeworks=[Homework(description="A"), Homework(description="B")],
        marks=Marks(subjects=[_math(14, [1, 2])]),
        lessons=[Lesson(id="L1", is_away=True, teacher="M. Dupont", subject="Math")],
    )

    assert make_monitor(session).run() is True

    titles = [title for title, _ in recorder.sent]
    assert len(recorder.sent) == 3
    assert titles[0].startswith("📝")
    assert recorder.sent[0][1] == "B"
    assert titles[1] == "📚 Nouvelle note en MATH"
    assert titles[2] == "👨‍⚕️ Professeur absent"

    snapshot = store.load()
    assert [h.description for h in snapshot.homeworks] == ["A", "B"]
    assert snapshot.marks.get_subject("Math").student_average == 14
    assert snapshot.lessons_away == ["L1"]
    assert session.logged_out


def test_fetch_windows_and_period(settings, make_monitor):
    session = FakeSession()

    make_monitor(session).run()

    assert session.calls == [
        ("homeworks", NOW, NOW + timedelta(days=365)),
        ("marks", MarksPeriod.SEMESTER),
        ("timetable", NOW, NOW + timedelta(days=30)),
    ]


def test_homework_burst_is_suppressed_but_saved(store, recorder, make_monitor):
    fetched = [Homework(description=str(i)) for i in range(4)]

    make_monitor(FakeSession(homeworks=fetched)).run()

    assert recorder.sent == []
    assert store.load().homeworks == fetched


def test_three_homeworks_are_notified(recorder, make_monitor):
    fetched = [Homework(description=str(i)) for i in range(3)]

    make_monitor(FakeSession(homeworks=fetched)).run()

    assert [message for _, message in recorder.sent] == ["0", "1", "2"]


def test_changed_subject_burst_is_suppressed(store, recorder, make_monitor):
    names = ["Math", "Anglais", "Histoire", "Physique"]
    store.save(Snapshot(marks=Marks(subjects=[
        Subject(name=name, student_average=10, marks=[]) for name in names
    ])))
    fetched = Marks(subjects=[
        Subject(name=name, student_average=11, marks=[Mark(id=name)]) for name in names
    ])

    make_monitor(FakeSession(marks=fetched)).run()

    assert recorder.sent == []
    assert store.load().marks == fetched


def test_new_subject_is_not_notified(store, recorder, make_monitor):
    fetched = Marks(subjects=[
        Subject(name="SVT", student_average=15, marks=[Mark(id=str(i)) for i in range(5)]),
    ])

    make_monitor(FakeSession(marks=fetched)).run()

    assert recorder.sent == []
    assert store.load().marks == fetched


def test_all_absences_are_notified(store, recorder, make_monitor):
    lessons = [Lesson(id=f"L{i}", is_away=True) for i in range(10)]

    make_monitor(FakeSession(lessons=lessons)).run()

    assert len(recorder.sent) == 10
    assert store.load().lessons_away == [f"L{i}" for i in range(10)]


def test_lessons_away_only_grows(store, recorder, make_monitor):
    store.save(Snapshot(lessons_away=["OLD"]))

    make_monitor(FakeSession(lessons=[Lesson(id="L1", is_away=True)])).run()
    make_monitor(FakeSession(lessons=[Lesson(id="L2", is_away=True)])).run()

    assert store.load().lessons_away == ["OLD", "L1", "L2"]
    assert len(recorder.sent) == 2


def test_second_cycle_sends_nothing_new(recorder, make_monitor):
    session = FakeSession(
        homeworks=[Homework(description="A")],
        lessons=[Lesson(id="L1", is_away=True)],
    )
    monitor = make_monitor(session)

    monitor.run()
    monitor.run()

    assert len(recorder.sent) == 2


def test_login_failure_leaves_snapshot_untouched(store, recorder, make_monitor):
    before = Snapshot(homeworks=[Homework(description="A")], lessons_away=["L1"])
    store.save(before)

    assert make_monitor(FakeSession(fail_login=True)).run() is False

    assert recorder.sent == []
    assert store.load() == before


def test_fetch_failure_aborts_remaining_steps(store, recorder, make_monitor):
    session = FakeSession(
        homeworks=[Homework(description="A")],
        lessons=[Lesson(id="L1", is_away=True)],
    )

    def broken_marks(period):
        raise PronoteFetchError("timeout")

    session.marks = broken_marks
    monitor = make_monitor(session)

    assert monitor.run() is False

    snapshot = store.load()
    assert snapshot.homeworks == [Homework(description="A")]
    assert snapshot.lessons_away == []
    assert len(recorder.sent) == 1
    assert monitor.stats["errors"] == 1
    assert session.logged_out


def test_store_failure_stops_later_steps(settings, recorder, make_monitor, store):
    store.save(Snapshot.empty())
    saves = []

    def failing_save(snapshot):
        saves.append(snapshot)
        raise SnapshotStoreError("disk full")

    store.save = failing_save
    session = FakeSession(lessons=[Lesson(id="L1", is_away=True)])

    assert make_monitor(session).run() is False

    assert len(saves) == 1
    assert [call[0] for call in session.calls] == ["homeworks"]
    assert recorder.sent == []


def test_notifier_failure_does_not_block_snapshot(settings, store, make_monitor, recorder):
    class Broken:
        name = "broken"

        def send(self, title, message):
            raise RuntimeError("channel down")

    monitor = make_monitor(FakeSession(lessons=[Lesson(id="L1", is_away=True)]))
    monitor.notifiers.notifiers.insert(0, Broken())

    assert monitor.run() is True

    assert len(recorder.sent) == 1
    assert store.load().lessons_away == ["L1"]


def test_overlapping_cycle_is_skipped(make_monitor):
    started = threading.Event()
    release = threading.Event()
    session = FakeSession()
    original = session.homeworks

    def slow_homeworks(start, end):
        started.set()
        release.wait(5)
        return original(start, end)

    session.homeworks = slow_homeworks
    monitor = make_monitor(session)
    worker = threading.Thread(target=monitor.run)
    worker.start()
    started.wait(5)

    assert monitor.is_running
    assert monitor.run() is False

    release.set()
    worker.join(5)
    assert not monitor.is_running
    assert [call[0] for call in session.calls] == ["homeworks", "marks", "timetable"]


def test_clock_defaults_to_naive_local_time(settings, store, recorder):
    monitor = PronoteMonitor(settings=settings, store=store, notifiers=NotifierGroup([recorder]))

    now = monitor.clock()
    assert isinstance(now, datetime)
    assert now.tzinfo is None


def test_logout_failure_does_not_fail_finished_cycle(store, recorder, make_monitor):
    class LogoutFails(FakeSession):
        def logout(self):
            raise RuntimeError("logout failed")

    monitor = make_monitor(LogoutFails(lessons=[Lesson(id="L1", is_away=True)]))

    assert monitor.run() is True

    assert monitor.stats["errors"] == 0
    assert len(recorder.sent) == 1
    assert store.load().lessons_away == ["L1"]


def test_undelivered_notifications_are_not_counted(settings, store):
    monitor = PronoteMonitor(
        settings=settings,
        store=store,
        notifiers=NotifierGroup([]),
        session_factory=lambda: FakeSession(lessons=[Lesson(id="L1", is_away=True)]),
        clock=lambda: NOW,
    )

    assert monitor.run() is True

    assert monitor.stats["new_absences"] == 1
    assert monitor.stats["notifications_sent"] == 0
    assert store.load().lessons_away == ["L1"]


def test_delivered_notifications_are_counted(make_monitor):
    monitor = make_monitor(FakeSession(lessons=[Lesson(id="L1", is_away=True)]))

    monitor.run()

    assert monitor.stats["notifications_sent"] == 1
