import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

CENTS = Decimal("0.01")


class TextValidator:
    """Basic text validations for catalog and registration input."""

    @staticmethod
    def _is_non_empty(text: Optional[str]) -> bool:
        return text is not None and bool(text.strip())

    @staticmethod
    def validate_title(title: Optional[str]) -> bool:
        return TextValidator._is_non_empty(title)

    @staticmethod
    def validate_author(author: Optional[str]) -> bool:
        # must not be digits only
        if not TextValidator._is_non_empty(author):
            return False
        return not author.strip().isdigit()

    @staticmethod
    def validate_name(name: Optional[str]) -> bool:
        if not TextValidator._is_non_empty(name):
            return False
        return any(c.isalpha() for c in name)

    @staticmethod
    def validate_identifier(identifier: Optional[str]) -> bool:
        if not TextValidator._is_non_empty(identifier):
            return False
        # identifiers are single tokens, e.g. ISBNs or user IDs
        return re.search(r"\s", identifier.strip()) is None


class AmountValidator:
    """Parses user-entered money amounts into Decimals rounded to cents."""

    @staticmethod
    def parse_amount(raw: Optional[str]) -> Decimal:
        if raw is None:
            raise ValueError("Amount cannot be empty.")
        cleaned = raw.strip().lstrip("$").replace(",", "")
        if not cleaned:
            raise ValueError("Amount cannot be empty.")
        try:
            amount = Decimal(cleaned)
        except InvalidOperation as exc:
            raise ValueError(f"'{raw}' is not a valid amount.") from exc
        if not amount.is_finite():
            raise ValueError(f"'{raw}' is not a valid amount.")
        return amount.quantize(CENTS, rounding=ROUND_HALF_UP)
