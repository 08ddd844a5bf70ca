"""Prompt text files.

The teacher prompt ships as ``system.txt`` next to this module. A file with
the same name under ``./prompts/`` in the working directory takes precedence,
so the prompt can be tuned without reinstalling.
"""

from functools import lru_cache
from pathlib import Path

from ..languages import Language

_PACKAGE_DIR = Path(__file__).parent

LANGUAGE_PLACEHOLDER = "{language}"


def _candidates(filename: str) -> list[Path]:
    return [Path.cwd() / "prompts" / filename, _PACKAGE_DIR / filename]


@lru_cache(maxsize=16)
def load_prompt(name: str) -> str:
    """Read prompt ``name`` (without ``.txt``), preferring a local override.

    Raises:
        FileNotFoundError: If neither location has the file
    """
    paths = _candidates(f"{name}.txt")
    for path in paths:
        if path.is_file():
            return path.read_text(encoding="utf-8")

    searched = "\n".join(f"  - {path}" for path in paths)
    raise FileNotFoundError(f"Prompt '{name}' not found. Searched:\n{searched}")


def render_system_prompt(language: Language) -> str:
    """Teacher prompt asking for translations into ``language``."""
    return load_prompt("system").strip().replace(LANGUAGE_PLACEHOLDER, language.value)


def clear_cache() -> None:
    """Forget loaded prompts, e.g. after editing an override file."""
    load_prompt.cache_clear()


__all__ = [
    "LANGUAGE_PLACEHOLDER",
    "load_prompt",
    "render_system_prompt",
    "clear_cache",
]
