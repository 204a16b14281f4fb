"""Set of issued card types."""

from typing import Iterable, Iterator

from card_onboarding.exceptions import ValidationError

DELIMITER = ","


class CardTypeSet:
    """De-duplicated, insertion-ordered set of card type codes.

    The comma-joined form only exists at the serialization edge
    (``to_string`` / ``from_string``).
    """

    def __init__(self, card_types: Iterable[str] = ()) -> None:
        self._items: dict[str, None] = {}
        for card_type in card_types:
            self.add(card_type)

    def add(self, card_type: str) -> bool:
        """Add a card type. Returns False when it was already present."""
        card_type = _normalize(card_type)
        if card_type in self._items:
            return False
        self._items[card_type] = None
        return True

    def remove(self, card_type: str) -> bool:
        """Remove a card type. Returns False when it was absent."""
        card_type = _normalize(card_type)
        if card_type not in self._items:
            return False
        del self._items[card_type]
        return True

    def contains(self, card_type: str) -> bool:
        return _normalize(card_type) in self._items

    def __contains__(self, card_type: object) -> bool:
        return isinstance(card_type, str) and self.contains(card_type)

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CardTypeSet):
            return NotImplemented
        return set(self._items) == set(other._items)

    def __repr__(self) -> str:
        return f"CardTypeSet({list(self._items)!r})"

    def to_string(self) -> str:
        return DELIMITER.join(self._items)

    @classmethod
    def from_string(cls, value: str) -> "CardTypeSet":
        return cls(part for part in value.split(DELIMITER) if part.strip())


def _normalize(card_type: str) -> str:
    if not card_type or not card_type.strip():
        raise ValidationError("card type must not be empty")
    if DELIMITER in card_type:
        raise ValidationError(f"card type must not contain {DELIMITER!r}")
    return card_type.strip().upper()
