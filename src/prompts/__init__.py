"""Prompt texts shipped with the package, one .txt file per prompt."""

from functools import lru_cache
from pathlib import Path

_DIR = Path(__file__).parent


@lru_cache(maxsize=None)
def load_prompt(name: str) -> str:
    """Load a prompt by name (without extension), stripped. Read once per process."""
    return (_DIR / f"{name}.txt").read_text(encoding="utf-8").strip()
