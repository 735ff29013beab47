"""Exceptions raised at the edges of vocabloop.

The scheduling core itself never raises for exhausted pools or empty input;
these cover invalid configuration and store lookups.
"""


class VocabloopError(Exception):
    """Base class for all vocabloop errors."""


class InvalidSessionConfig(VocabloopError):
    pass


class InvalidGrade(VocabloopError, ValueError):
    pass


class CardNotFound(VocabloopError, KeyError):
    def __init__(self, card_id: str):
        super().__init__(card_id)
        self.card_id = card_id

    def __str__(self) -> str:
        return f"Card not found: {self.card_id}"


class DeckFormatError(VocabloopError):
    pass
