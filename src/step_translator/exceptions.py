"""Exceptions raised by Step Translator."""


class TranslationError(RuntimeError):
    """Base class for translation failures."""


class InputCollectionError(TranslationError):
    """Raised when the input test collection is missing or unreadable."""


class SynthesisError(TranslationError):
    """Raised when a single test cannot be turned into a script."""
