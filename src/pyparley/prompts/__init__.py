"""System instruction lookup.

The assistant's instruction lives in ``system.txt`` next to this module.
The working directory is never searched; a deployment replaces the
instruction only by pointing ``PYPARLEY_PROMPTS_DIR`` at a directory.
"""

import os
from functools import lru_cache
from pathlib import Path

PROMPTS_DIR_ENV = "PYPARLEY_PROMPTS_DIR"

_PACKAGE_DIR = Path(__file__).parent


def prompt_search_path() -> list[Path]:
    """Directories searched for prompt files, highest priority first."""
    dirs = []
    override = os.getenv(PROMPTS_DIR_ENV)
    if override:
        dirs.append(Path(override))
    dirs.append(_PACKAGE_DIR)
    return dirs


@lru_cache(maxsize=16)
def load_prompt(name: str) -> str:
    """Return the text of ``{name}.txt``, stripped, from the first directory
    of :func:`prompt_search_path` that has it.

    Raises:
        FileNotFoundError: If no directory holds the file
    """
    searched = []
    for directory in prompt_search_path():
        candidate = directory / f"{name}.txt"
        if candidate.is_file():
            return candidate.read_text(encoding="utf-8").strip()
        searched.append(candidate)

    lines = "\n".join(f"  - {path}" for path in searched)
    raise FileNotFoundError(f"Prompt '{name}' not found. Searched:\n{lines}")


def get_system_prompt() -> str:
    return load_prompt("system")


def clear_cache() -> None:
    """Forget loaded prompts so edited files are read again."""
    load_prompt.cache_clear()


__all__ = [
    "PROMPTS_DIR_ENV",
    "clear_cache",
    "get_system_prompt",
    "load_prompt",
    "prompt_search_path",
]
