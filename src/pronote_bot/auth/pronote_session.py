"""
Pronote session management and data fetching.

Wraps a pronotepy client: logs in (directly or through an ENT), fetches
homeworks, marks and timetable, and converts them to the bot's models.
"""

import logging
from datetime import datetime
from typing import List, Optional

import pronotepy
import requests
from dateutil.tz import gettz
from pronotepy import ent as pronote_ent

from pronote_bot.config import Settings, get_settings
from pronote_bot.models import Homework, Lesson, Mark, Marks, MarksPeriod, Subject

logger = logging.getLogger(__name__)


class PronoteAuthError(Exception):
    """Raised when Pronote authentication fails."""
    pass


class PronoteFetchError(Exception):
    """Raised when data cannot be fetched from an authenticated session."""
    pass


# Words Pronote uses in period names ("Trimestre 1", "Semestre 2", "Année continue")
PERIOD_KEYWORDS = {
    MarksPeriod.TRIMESTER: "trimestre",
    MarksPeriod.SEMESTER: "semestre",
    MarksPeriod.YEAR: "année",
}


def parse_average(raw: Optional[str]) -> Optional[float]:
    """
    Parse a Pronote average ("12,50") to a float.

    Returns None for values Pronote uses instead of a number
    ("Abs", "N.Not", empty).
    """
    if raw is None:
        return None
    try:
        return float(str(raw).replace(",", ".").strip())
    except ValueError:
        return None


class PronoteSession:
    """
    Manages an authenticated Pronote session.

    Handles:
    - Direct or ENT/CAS login
    - Fetching homeworks, marks and timetable
    - Conversion of pronotepy objects to bot models

    Use as a context manager to log in and out around a cycle.
    """

    def __init__(self, settings: Optional[Settings] = None):
        """
        Initialize Pronote session.

        Args:
            settings: Optional settings instance, will use default if not provided
        """
        self.settings = settings or get_settings()
        self._client: Optional[pronotepy.Client] = None

    @property
    def is_authenticated(self) -> bool:
        """Check if session is authenticated."""
        return self._client is not None and self._client.logged_in

    def _resolve_ent(self):
        """Look up the ENT login function by name."""
        if not self.settings.uses_ent:
            return None
        ent_function = getattr(pronote_ent, self.settings.pronote_ent, None)
        if ent_function is None:
            raise PronoteAuthError(f"Unknown ENT: {self.settings.pronote_ent}")
        return ent_function

    def login(self) -> bool:
        """
        Authenticate with Pronote.

        Returns:
            bool: True if login successful

        Raises:
            PronoteAuthError: If login fails
        """
        logger.info(f"Attempting login to {self.settings.pronote_url}")
        ent_function = self._resolve_ent()

        try:
            client = pronotepy.Client(
                self.settings.pronote_url,
                username=self.settings.pronote_username,
                password=self.settings.pronote_password,
                ent=ent_function,
            )
        except (pronotepy.PronoteAPIError, requests.exceptions.RequestException) as e:
            raise PronoteAuthError(f"Login request failed: {e}") from e

        if not client.logged_in:
            raise PronoteAuthError("Login failed - credentials may be incorrect")

        self._client = client
        logger.info(f"Login successful for user: {self.settings.pronote_username}")
        return True

    def _require_client(self) -> pronotepy.Client:
        if self._client is None:
            raise PronoteAuthError("Not authenticated. Call login() first.")
        return self._client

    def homeworks(self, start: datetime, end: datetime) -> List[Homework]:
        """
        Fetch homeworks due between two dates.

        Args:
            start: Window start
            end: Window end

        Returns:
            List[Homework]: Homeworks in Pronote order
        """
        client = self._require_client()
        try:
            raw = client.homework(start.date(), end.date())
        except (pronotepy.PronoteAPIError, requests.exceptions.RequestException) as e:
            raise PronoteFetchError(f"Could not fetch homeworks: {e}") from e

        return [
            Homework(
                description=item.description,
                subject=item.subject.name if item.subject else None,
                due_date=item.date,
            )
            for item in raw
        ]

    def _find_period(self, period: MarksPeriod):
        """Pick the period of the given kind containing today, else the current one."""
        client = self._require_client()
        keyword = PERIOD_KEYWORDS[period]
        now = datetime.now(gettz(self.settings.timezone)).replace(tzinfo=None)
        for candidate in client.periods:
            if keyword in candidate.name.lower() and candidate.start <= now <= candidate.end:
                return candidate
        logger.debug(f"No {period.value} period found for today, using current period")
        return client.current_period

    def marks(self, period: MarksPeriod = MarksPeriod.SEMESTER) -> Marks:
        """
        Fetch marks and averages, grouped by subject.

        Args:
            period: Grading period to fetch

        Returns:
            Marks: One Subject per subject with an average or a mark
        """
        try:
            pronote_period = self._find_period(period)
            grades = pronote_period.grades
            averages = pronote_period.averages
        except (pronotepy.PronoteAPIError, requests.exceptions.RequestException) as e:
            raise PronoteFetchError(f"Could not fetch marks: {e}") from e

        marks_by_subject = {}
        for grade in grades:
            marks_by_subject.setdefault(grade.subject.name, []).append(
                Mark(
                    id=grade.id,
                    value=grade.grade,
                    scale=grade.out_of,
                    average=grade.average,
                )
            )

        subjects = []
        for average in averages:
            name = average.subject.name
            subjects.append(
                Subject(
                    name=name,
                    student_average=parse_average(average.student),
                    marks=marks_by_subject.pop(name, []),
                )
            )
        # Subjects with marks but no average yet
        for name, subject_marks in marks_by_subject.items():
            subjects.append(Subject(name=name, marks=subject_marks))

        return Marks(subjects=subjects)

    def timetable(self, start: datetime, end: datetime) -> List[Lesson]:
        """
        Fetch lessons between two dates.

        A lesson is away when its status mentions an absent teacher
        ("Prof. absent", "Professeur absent").
        """
        client = self._require_client()
        try:
            raw = client.lessons(start, end)
        except (pronotepy.PronoteAPIError, requests.exceptions.RequestException) as e:
            raise PronoteFetchError(f"Could not fetch timetable: {e}") from e

        return [
            Lesson(
                id=lesson.id,
                is_away="absent" in (lesson.status or "").lower(),
                teacher=lesson.teacher_name,
                subject=lesson.subject.name if lesson.subject else None,
                start=lesson.start,
            )
            for lesson in raw
        ]

    def logout(self) -> None:
        """Drop the Pronote session."""
        if self._client is None:
            return
        try:
            communication = getattr(self._client, "communication", None)
            if communication is not None:
                communication.session.close()
        except Exception as e:
            logger.warning(f"Error while closing Pronote session: {e}")
        finally:
            self._client = None
            logger.info("Logged out from Pronote")

    def __enter__(self) -> "PronoteSession":
        """Context manager entry - login."""
        self.login()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - logout."""
        self.logout()
