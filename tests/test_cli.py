import json
import logging
from decimal import Decimal

import pytest
from typer.testing import CliRunner

from config import Settings
from main import app, log_level_for, setup_logging

runner = CliRunner()


def run_menu(*lines):
    return runner.invoke(app, [], input="\n".join(lines) + "\n")


def test_exit(lib):
    result = run_menu("0")
    assert result.exit_code == 0
    assert "Library Management System" in result.stdout
    assert "Exiting..." in result.stdout

def test_invalid_choice(lib):
    result = run_menu("9", "0")
    assert result.exit_code == 0
    assert "Invalid choice. Try again." in result.stdout

def test_non_numeric_choice_is_asked_again(lib):
    result = run_menu("abc", "0")
    assert result.exit_code == 0
    assert "Please enter a valid integer number" in result.stdout
    assert "Exiting..." in result.stdout

def test_add_book_and_display_inventory(lib):
    result = run_menu("1", "Dune", "Frank Herbert", "9780441013593", "3", "0")
    assert result.exit_code == 0
    assert "Book added to inventory." in result.stdout
    assert "Title: Dune" in result.stdout
    assert "Author: Frank Herbert" in result.stdout
    assert "Status: Available" in result.stdout
    assert "Total Books: 1" in result.stdout
    assert lib.find_book("9780441013593") is not None

def test_add_book_invalid_input(lib):
    result = run_menu("1", "Dune", "Frank Herbert", "", "0")
    assert result.exit_code == 0
    assert "Error:" in result.stdout
    assert lib.list_books() == []

def test_display_empty_inventory(lib):
    result = run_menu("3", "0")
    assert "Library Inventory:" in result.stdout
    assert "Title:" not in result.stdout
    assert "Total Books: 0" in result.stdout

def test_remove_book(lib):
    lib.add_book("To Be Removed", "Remover", "999")
    result = run_menu("2", "999", "2", "999", "0")
    assert result.exit_code == 0
    assert "Book removed from inventory." in result.stdout
    assert "Book not found in inventory." in result.stdout
    assert lib.find_book("999") is None

def test_remove_checked_out_book(lib):
    lib.add_book("Dune", "Frank Herbert", "111")
    lib.register_user("Alice", "U1")
    lib.borrow_book("U1", "111")

    result = run_menu("2", "111", "0")
    assert result.exit_code == 0
    assert "checked out" in result.stdout
    assert lib.find_book("111") is not None

def test_register_user(lib):
    result = run_menu("4", "Alice", "U1", "0")
    assert result.exit_code == 0
    assert "User registered successfully." in result.stdout
    assert lib.find_user("U1").name == "Alice"

def test_borrow_with_nothing_registered(lib):
    result = run_menu("5", "0")
    assert "No users or books available." in result.stdout

def test_borrow_book(lib):
    lib.add_book("Dune", "Frank Herbert", "111")
    lib.add_book("Emma", "Jane Austen", "222")
    lib.register_user("Alice", "U1")

    result = run_menu("5", "0", "1", "0")
    assert result.exit_code == 0
    assert "Book borrowed successfully." in result.stdout
    assert lib.find_book("222").available is False
    assert lib.find_user("U1").borrowed == ["222"]

def test_borrow_invalid_index(lib):
    lib.add_book("Dune", "Frank Herbert", "111")
    lib.register_user("Alice", "U1")

    result = run_menu("5", "0", "3", "0")
    assert "Invalid selection." in result.stdout
    assert lib.find_book("111").available is True

def test_borrow_unavailable_book(lib):
    lib.add_book("Dune", "Frank Herbert", "111")
    lib.register_user("Alice", "U1")
    lib.register_user("Bob", "U2")
    lib.borrow_book("U1", "111")

    result = run_menu("5", "1", "0", "0")
    assert "Book is not available." in result.stdout
    assert lib.find_user("U2").borrowed == []

def test_return_on_time(lib, clock):
    lib.add_book("Dune", "Frank Herbert", "111")
    lib.register_user("Alice", "U1")
    lib.borrow_book("U1", "111")
    clock.advance(2)

    result = run_menu("6", "0", "0", "0")
    assert "Book returned successfully." in result.stdout
    assert "Fine added" not in result.stdout
    assert lib.find_book("111").available is True

def test_return_late_adds_fine(lib, clock):
    lib.add_book("Dune", "Frank Herbert", "111")
    lib.register_user("Alice", "U1")
    lib.borrow_book("U1", "111")
    clock.advance(15)

    result = run_menu("6", "0", "0", "0")
    assert "Book returned late. Fine added: $20.00" in result.stdout
    assert "Book returned successfully." in result.stdout
    assert lib.find_user("U1").fine_balance == Decimal("20.00")

def test_return_with_no_borrowed_books(lib):
    lib.register_user("Alice", "U1")
    result = run_menu("6", "0", "0")
    assert "No books borrowed." in result.stdout

def test_return_invalid_user(lib):
    lib.register_user("Alice", "U1")
    result = run_menu("6", "5", "0")
    assert "Invalid user selection." in result.stdout

def test_pay_fines(lib):
    lib.register_user("Alice", "U1")
    lib.find_user("U1").fine_balance = Decimal("20.00")

    result = run_menu("7", "0", "5", "0")
    assert result.exit_code == 0
    assert "Paid $5.00 towards fines. Remaining: $15.00" in result.stdout
    assert lib.find_user("U1").fine_balance == Decimal("15.00")

def test_pay_fines_overpayment(lib):
    lib.register_user("Alice", "U1")
    lib.find_user("U1").fine_balance = Decimal("20.00")

    result = run_menu("7", "0", "25", "0")
    assert "Payment exceeds owed fines." in result.stdout
    assert lib.find_user("U1").fine_balance == Decimal("20.00")

def test_pay_fines_bad_amount(lib):
    lib.register_user("Alice", "U1")
    lib.find_user("U1").fine_balance = Decimal("20.00")

    result = run_menu("7", "0", "lots", "7", "0", "0", "0")
    assert "is not a valid amount" in result.stdout
    assert "Payment amount must be greater than zero." in result.stdout
    assert lib.find_user("U1").fine_balance == Decimal("20.00")

def test_display_user_info(lib):
    lib.add_book("Dune", "Frank Herbert", "111")
    lib.register_user("Alice", "U1")
    lib.borrow_book("U1", "111")

    result = run_menu("8", "0", "0")
    assert "User: Alice" in result.stdout
    assert "Fines: $0.00" in result.stdout
    assert "Borrowed books: 1" in result.stdout
    assert "Status: Checked Out" in result.stdout

def test_display_user_info_without_users(lib):
    result = run_menu("8", "0")
    assert "No users available." in result.stdout

def test_policy_command(lib):
    result = runner.invoke(app, ["policy"])
    assert result.exit_code == 0
    assert "Loan period: 5 seconds" in result.stdout
    assert "Fine rate: $2.00 per second" in result.stdout
    assert "Librarian: Admin (L001)" in result.stdout

def test_policy_overrides(lib):
    result = runner.invoke(app, ["--loan-period", "14", "--time-unit", "days", "--fine-rate", "0.5", "policy"])
    assert result.exit_code == 0
    assert "Loan period: 14 days" in result.stdout
    assert "Fine rate: $0.5 per day" in result.stdout

def test_policy_json_output(lib):
    result = runner.invoke(app, ["--output", "json", "policy"])
    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["loan_time_unit"] == "seconds"
    assert payload["fine_rate"] == "2.00"

def test_invalid_time_unit(lib):
    result = runner.invoke(app, ["--time-unit", "weeks", "policy"])
    assert result.exit_code != 0

@pytest.mark.parametrize("debug, log_level, expected", [
    (True, "ERROR", logging.DEBUG),
    (False, "INFO", logging.INFO),
    (False, "error", logging.ERROR),
    (False, "LOUD", logging.WARNING),
    (False, "BASICCONFIG", logging.WARNING),
])
def test_log_level_for(debug, log_level, expected):
    assert log_level_for(Settings(debug=debug, log_level=log_level)) == expected

def test_setup_logging_passes_level(monkeypatch):
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))

    setup_logging(Settings(debug=False, log_level="INFO"))

    assert calls[0]["level"] == logging.INFO
