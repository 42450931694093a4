"""Clock in and out of work, logging each work block to Google Calendar."""
from __future__ import annotations

__version__ = "0.1.0"
