"""Release domain: grammar for emergency patch titles."""

from __future__ import annotations
