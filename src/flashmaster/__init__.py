"""flashmaster: spaced-repetition flashcards with durable local storage."""

from flashmaster.consts import VERSION

__version__ = VERSION
