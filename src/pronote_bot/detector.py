"""
Delta detection between the snapshot and a fresh fetch.

All functions here are pure: they only read the snapshot and the
fetched items and return what is new.
"""

from typing import List, NamedTuple, Sequence

from pronote_bot.models import Homework, Lesson, Mark, Marks, Snapshot, Subject


class SubjectDelta(NamedTuple):
    """A subject whose average changed and the marks that explain it."""
    subject: Subject
    new_marks: List[Mark]


def new_homeworks(snapshot: Snapshot, fetched: Sequence[Homework]) -> List[Homework]:
    """
    Homeworks whose description is not in the snapshot.

    Two homeworks with the same text are treated as the same homework.
    """
    known = {homework.description for homework in snapshot.homeworks}
    return [homework for homework in fetched if homework.description not in known]


def changed_subjects(snapshot: Snapshot, fetched: Marks) -> List[SubjectDelta]:
    """
    Subjects already tracked whose student average changed.

    Subjects seen for the first time are ignored, as are new marks of
    subjects whose average did not move.
    """
    deltas = []
    for subject in fetched.subjects:
        cached = snapshot.marks.get_subject(subject.name)
        if cached is None or cached.student_average == subject.student_average:
            continue
        marks = [mark for mark in subject.marks if not cached.has_mark(mark.id)]
        deltas.append(SubjectDelta(subject, marks))
    return deltas


def new_absences(snapshot: Snapshot, fetched: Sequence[Lesson]) -> List[Lesson]:
    """Lessons with an absent teacher that were never notified."""
    seen = set(snapshot.lessons_away)
    lessons = []
    for lesson in fetched:
        if lesson.is_away and lesson.id not in seen:
            seen.add(lesson.id)
            lessons.append(lesson)
    return lessons


def is_burst(items: Sequence, threshold: int) -> bool:
    """True when there are too many items for their notifications to be useful."""
    return len(items) > threshold
