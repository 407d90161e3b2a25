import logging
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from book import Book
from config import Settings, settings as default_settings
from patron import Librarian, User
from utils.validators import CENTS, TextValidator

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Timezone-aware UTC time, unaffected by daylight-saving changes."""
    return datetime.now(timezone.utc)


class LendingError(Exception):
    """Base class for recoverable lending failures."""


class BookUnavailable(LendingError):
    def __init__(self, book: Book) -> None:
        self.book = book
        super().__init__("Book is not available.")


class NotBorrowedByUser(LendingError):
    def __init__(self, user: User, book_id: str) -> None:
        self.user = user
        self.book_id = book_id
        super().__init__("You didn't borrow this book.")


class OverpaymentRejected(LendingError):
    def __init__(self, amount: Decimal, balance: Decimal) -> None:
        self.amount = amount
        self.balance = balance
        super().__init__("Payment exceeds owed fines.")


class InvalidPaymentAmount(LendingError, ValueError):
    def __init__(self, amount: Any, message: str = "Payment amount must be greater than zero.") -> None:
        self.amount = amount
        super().__init__(message)


class BookCheckedOut(LendingError):
    def __init__(self, book: Book) -> None:
        self.book = book
        super().__init__(f"Book with ID {book.identifier} is checked out and cannot be removed.")


class DuplicateRecordError(ValueError):
    pass


class Library:
    """Owns the inventory and the registered users, and runs the lending ledger."""

    def __init__(self, settings: Optional[Settings] = None, clock: Optional[Clock] = None) -> None:
        self.settings = settings or default_settings
        self.clock: Clock = clock or utc_now
        self.librarian = Librarian(self.settings.librarian_name, self.settings.librarian_id)
        # Insertion-ordered so index selection in the shell stays stable
        self.books: Dict[str, Book] = {}
        self.users: Dict[str, User] = {}

    # ------------------------- Catalog admin ------------------------- #
    def add_book(self, title: str, author: str, identifier: str) -> Book:
        """Add a new book to the inventory. Prevent duplicates by identifier."""
        if not TextValidator.validate_title(title):
            raise ValueError("Title cannot be empty.")
        if not TextValidator.validate_author(author):
            raise ValueError("Author cannot be empty or numeric.")
        if not TextValidator.validate_identifier(identifier):
            raise ValueError("Book ID cannot be empty or contain spaces.")

        book = Book(title=title, author=author, identifier=identifier)
        if book.identifier in self.books:
            raise DuplicateRecordError(f"Book with ID {book.identifier} already exists.")
        self.books[book.identifier] = book
        logger.info(f"Book added: {book.identifier} ({book.title})")
        return book

    def remove_book(self, identifier: str) -> bool:
        """Remove a book by identifier. Checked-out books cannot be removed."""
        book = self.find_book(identifier)
        if not book:
            return False
        if not book.available:
            logger.info(f"Refused to remove checked-out book {book.identifier}")
            raise BookCheckedOut(book)
        del self.books[book.identifier]
        logger.info(f"Book removed: {book.identifier}")
        return True

    def find_book(self, identifier: str) -> Optional[Book]:
        if identifier is None:
            return None
        return self.books.get(identifier.strip())

    def list_books(self) -> List[Book]:
        return list(self.books.values())

    # ------------------------- Registration ------------------------- #
    def register_user(self, name: str, identifier: str) -> User:
        if not TextValidator.validate_name(name):
            raise ValueError("User name cannot be empty.")
        if not TextValidator.validate_identifier(identifier):
            raise ValueError("User ID cannot be empty or contain spaces.")

        user = User(name=name, identifier=identifier)
        if user.identifier in self.users:
            raise DuplicateRecordError(f"User with ID {user.identifier} already exists.")
        self.users[user.identifier] = user
        logger.info(f"User registered: {user.identifier} ({user.name})")
        return user

    def find_user(self, identifier: str) -> Optional[User]:
        if identifier is None:
            return None
        return self.users.get(identifier.strip())

    def list_users(self) -> List[User]:
        return list(self.users.values())

    def borrowed_books(self, user_id: str) -> List[Book]:
        """Resolve a user's borrowed identifiers to Book records, in borrow order."""
        user = self._require_user(user_id)
        return [self.books[book_id] for book_id in user.borrowed if book_id in self.books]

    # ------------------------- Lending ledger ------------------------- #
    def borrow_book(self, user_id: str, book_id: str) -> Book:
        """Check a book out to a user and stamp its due time."""
        user = self._require_user(user_id)
        book = self._require_book(book_id)
        if not book.available:
            logger.info(f"Borrow rejected: {book.identifier} is not available (user {user.identifier})")
            raise BookUnavailable(book)

        now = self.clock()
        user.borrowed.append(book.identifier)
        book.check_out(now + self.settings.loan_duration)
        logger.info(f"Book {book.identifier} borrowed by {user.identifier}, due {book.due_at.isoformat()}")
        return book

    def return_book(self, user_id: str, book_id: str) -> Decimal:
        """Check a book back in and charge any overdue fine.

        Returns the fine added to the user's balance (zero when on time).
        """
        user = self._require_user(user_id)
        if book_id is None or not user.has_borrowed(book_id.strip()):
            logger.info(f"Return rejected: {book_id} is not borrowed by {user.identifier}")
            raise NotBorrowedByUser(user, book_id)
        book = self._require_book(book_id)

        # Clock is read once; the due time is cleared only after the fine is known
        now = self.clock()
        fine = self.calculate_fine(book.due_at, now)
        user.fine_balance += fine
        user.borrowed.remove(book.identifier)
        book.check_in()

        if fine > 0:
            logger.warning(f"Book {book.identifier} returned late by {user.identifier}, fine ${fine}")
        else:
            logger.info(f"Book {book.identifier} returned by {user.identifier}")
        return fine

    def pay_fine(self, user_id: str, amount: Union[Decimal, float, int, str]) -> Decimal:
        """Apply a payment to a user's fines. Returns the remaining balance."""
        user = self._require_user(user_id)
        try:
            amount = Decimal(str(amount))
        except InvalidOperation as exc:
            raise InvalidPaymentAmount(amount, f"'{amount}' is not a valid amount.") from exc
        if not amount.is_finite():
            raise InvalidPaymentAmount(amount, f"'{amount}' is not a valid amount.")
        if amount <= 0:
            raise InvalidPaymentAmount(amount)
        # Compared unrounded, so 20.004 against 20.00 is an overpayment
        if amount > user.fine_balance:
            logger.info(f"Payment of ${amount} rejected for {user.identifier}, owes ${user.fine_balance}")
            raise OverpaymentRejected(amount, user.fine_balance)
        if amount != amount.quantize(CENTS):
            raise InvalidPaymentAmount(amount, "Payment amount cannot include fractions of a cent.")

        user.fine_balance -= amount
        logger.info(f"{user.identifier} paid ${amount}, remaining ${user.fine_balance}")
        return user.fine_balance

    def calculate_fine(self, due_at: Optional[datetime], now: datetime) -> Decimal:
        """Fine for a loan due at ``due_at`` and returned at ``now``."""
        if due_at is None or now <= due_at:
            return Decimal("0.00")
        overdue: timedelta = now - due_at
        units = Decimal(str(overdue.total_seconds())) / Decimal(self.settings.unit_seconds)
        return (units * self.settings.fine_rate).quantize(CENTS, rounding=ROUND_HALF_UP)

    # ------------------------- Reports ------------------------- #
    def overdue_books(self) -> List[Tuple[User, Book]]:
        now = self.clock()
        overdue = []
        for user in self.users.values():
            for book in self.borrowed_books(user.identifier):
                if book.is_overdue(now):
                    overdue.append((user, book))
        return overdue

    def get_statistics(self) -> Dict[str, Any]:
        """Get library statistics."""
        checked_out = sum(1 for book in self.books.values() if not book.available)
        return {
            "total_books": len(self.books),
            "available_books": len(self.books) - checked_out,
            "checked_out_books": checked_out,
            "registered_users": len(self.users),
            "overdue_loans": len(self.overdue_books()),
            "outstanding_fines": sum((u.fine_balance for u in self.users.values()), Decimal("0.00")),
        }

    # ------------------------- Utilities ------------------------- #
    def _require_user(self, identifier: str) -> User:
        user = self.find_user(identifier)
        if not user:
            raise LookupError(f"User with ID {identifier} not found.")
        return user

    def _require_book(self, identifier: str) -> Book:
        book = self.find_book(identifier)
        if not book:
            raise LookupError(f"Book with ID {identifier} not found.")
        return book
