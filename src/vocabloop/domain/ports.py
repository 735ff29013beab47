"""
Ports (interfaces) for deck and review history storage.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod

from .models import Card, ReviewLog


class CardStore(ABC):
    """
    Port for reading and persisting cards.

    Implementations:
        - YamlDeckRepository (through DeckStore).
    """

    @abstractmethod
    async def load_cards(self) -> list[Card]:
        """
        Fetch the full current deck.

        Returns:
            Every card, in storage order.
        """
        pass

    @abstractmethod
    async def get_card(self, card_id: str) -> Card:
        """
        Fetch one card by id.

        Raises:
            CardNotFound: If no card has this id.
        """
        pass

    @abstractmethod
    async def save_card(self, card: Card) -> None:
        """Durably persist a card, keyed by its id."""
        pass


class ReviewLogStore(ABC):
    """Port for the append-only review history."""

    @abstractmethod
    async def load_reviews(self) -> list[ReviewLog]:
        """
        Fetch the full review history.

        Returns:
            ReviewLog entries sorted by reviewed_at ascending.
        """
        pass

    @abstractmethod
    async def append_review(self, log: ReviewLog) -> None:
        """Durably append one review entry."""
        pass


class DeckStore(CardStore, ReviewLogStore):
    """
    Port for a deck and its history kept together.

    Implementations:
        - YamlDeckRepository: a single YAML deck file.
    """

    @abstractmethod
    async def save_review(self, card: Card, log: ReviewLog) -> None:
        """
        Persist an updated card and its review entry as one change.

        Either both are stored or neither is.
        """
        pass
