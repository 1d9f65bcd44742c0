"""
translit-probe - DOM-level validation of a web transliteration tool.

Drives an API-less transliteration page through its rendered DOM, recovers
the transliterated text from noisy output markup and checks it per scenario.
"""

__version__ = "0.1.0"
