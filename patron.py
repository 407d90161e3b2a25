from __future__ import annotations

from decimal import Decimal
from typing import List


class User:
    """A registered library patron.

    Borrowed books are tracked by identifier; the Library resolves them to
    Book records when needed.
    """

    def __init__(self, name: str, identifier: str, borrowed: List[str] | None = None,
                 fine_balance: Decimal | None = None) -> None:
        self.name = name.strip()
        self.identifier = identifier.strip()
        self.borrowed: List[str] = list(borrowed or [])
        self.fine_balance = fine_balance if fine_balance is not None else Decimal("0.00")

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.name} (ID: {self.identifier})"

    def has_borrowed(self, book_id: str) -> bool:
        return book_id in self.borrowed

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "identifier": self.identifier,
            "borrowed": list(self.borrowed),
            "fine_balance": str(self.fine_balance),
        }


class Librarian:
    """Staff member on duty at the desk."""

    def __init__(self, name: str, employee_id: str) -> None:
        self.name = name
        self.employee_id = employee_id

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.name} ({self.employee_id})"
