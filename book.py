from __future__ import annotations

from datetime import datetime


class Book:
    """Represents a single book in the library inventory."""

    def __init__(self, title: str, author: str, identifier: str, available: bool = True,
                 due_at: datetime | None = None) -> None:
        self.title = title.strip()
        self.author = author.strip()
        self.identifier = identifier.strip()
        self.available = available
        # Set only while the book is checked out
        self.due_at = due_at

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} by {self.author} (ID: {self.identifier})"

    @property
    def status(self) -> str:
        return "Available" if self.available else "Checked Out"

    def check_out(self, due_at: datetime) -> None:
        self.available = False
        self.due_at = due_at

    def check_in(self) -> None:
        self.available = True
        self.due_at = None

    def is_overdue(self, now: datetime) -> bool:
        return not self.available and self.due_at is not None and now > self.due_at

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "author": self.author,
            "identifier": self.identifier,
            "available": self.available,
            "status": self.status,
            "due_at": self.due_at.isoformat() if self.due_at else None,
        }
