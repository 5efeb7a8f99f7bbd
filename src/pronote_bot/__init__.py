"""
Pronote Notification Bot

Polls Pronote for homeworks, marks and teacher absences and sends a
notification for every new item it sees.
"""

__version__ = "1.2.0"
