"""vocabloop: adaptive review scheduling for vocabulary flashcards."""

from vocabloop.consts import VERSION

__version__ = VERSION
