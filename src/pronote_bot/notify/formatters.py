"""
Message formatters for notifications.

Turns detected items into the title/message pairs sent to every channel.
Messages are in French, like Pronote itself.
"""

from datetime import date
from typing import Optional

from pronote_bot.models import (
    Homework,
    Lesson,
    Mark,
    Notification,
    NotificationType,
    Subject,
)

WEEKDAYS = ["lundi", "mardi", "mercredi", "jeudi", "vendredi", "samedi", "dimanche"]
MONTHS = [
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
]


class MessageFormatter:
    """
    Formats notification content.

    Titles are short enough for push notifications; details go in the
    message.
    """

    @staticmethod
    def _format_day(day: Optional[date]) -> str:
        """Format a date as 'jeudi 1er octobre'."""
        if day is None:
            return "une date inconnue"
        day_number = "1er" if day.day == 1 else str(day.day)
        return f"{WEEKDAYS[day.weekday()]} {day_number} {MONTHS[day.month - 1]}"

    @staticmethod
    def _subject_label(name: Optional[str]) -> str:
        return name.upper() if name else "?"

    @classmethod
    def format_homework(cls, homework: Homework) -> Notification:
        """
        Format a new homework.

        Args:
            homework: The homework to format

        Returns:
            Notification: Title and message
        """
        message = homework.description.strip()
        if homework.due_date:
            message += f" (pour le {cls._format_day(homework.due_date)})"

        return Notification(
            notification_type=NotificationType.HOMEWORK,
            title=f"📝 Nouveau devoir en {cls._subject_label(homework.subject)}",
            message=message,
        )

    @classmethod
    def format_mark(cls, subject: Subject, mark: Mark) -> Notification:
        """
        Format a new mark.

        Args:
            subject: Subject the mark belongs to
            mark: The mark to format

        Returns:
            Notification: Title and message
        """
        return Notification(
            notification_type=NotificationType.MARK,
            title=f"📚 Nouvelle note en {cls._subject_label(subject.name)}",
            message=(
                f"Tu as eu {mark.value}/{mark.scale} "
                f"et la moyenne est de {mark.average}/{mark.scale}"
            ),
        )

    @classmethod
    def format_absence(cls, lesson: Lesson) -> Notification:
        """
        Format an absent teacher.

        Args:
            lesson: Lesson whose teacher is away

        Returns:
            Notification: Title and message
        """
        day = lesson.start.date() if lesson.start else None
        teacher = lesson.teacher or "Le professeur"
        return Notification(
            notification_type=NotificationType.ABSENCE,
            title="👨‍⚕️ Professeur absent",
            message=(
                f"{teacher} ({lesson.subject or '?'}) "
                f"sera absent(e) le {cls._format_day(day)}"
            ),
        )
