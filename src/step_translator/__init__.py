"""Step Translator - convert recorded browser test steps into Playwright specs."""

__version__ = "0.1.0"
