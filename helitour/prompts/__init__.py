"""Load the system prompts shipped next to this file."""

from pathlib import Path

_DIR = Path(__file__).parent


def load_prompt(name: str, **values: str) -> str:
    """
    Load a prompt by name (without extension), stripped.

    Keyword arguments fill ``{placeholders}`` in the text, e.g. the bookings
    hub address in the spam prompt.
    """
    text = (_DIR / f"{name}.txt").read_text(encoding="utf-8").strip()
    for key, value in values.items():
        text = text.replace("{" + key + "}", value)
    return text
