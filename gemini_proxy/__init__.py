"""Credential-shielding proxy for the Google Gemini generateContent API."""

__version__ = "1.0.0"
