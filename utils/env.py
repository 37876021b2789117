from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv

"""Environment helper utilities.

Loads a ``.env`` file from the project root so settings such as
``REBALANCER_DECISION_INTERVAL`` or ``OPENAI_API_KEY`` are visible through
``os.getenv``. Values already present in the process environment win.
"""

__all__ = ["load_project_dotenv", "find_project_root"]


def find_project_root(start: Path | None = None) -> Path:
    """Walk upwards until a directory containing ``pyproject.toml`` is found."""
    current = start or Path(__file__).resolve().parent
    for _ in range(10):
        if (current / "pyproject.toml").exists():
            return current
        if current.parent == current:
            break
        current = current.parent
    return Path(__file__).resolve().parent


def load_project_dotenv(start: Path | None = None) -> bool:
    """Load the project-level ``.env`` if present. Returns whether a file was loaded."""
    dotenv_path = find_project_root(start) / ".env"
    if not dotenv_path.exists():
        return False
    return load_dotenv(dotenv_path=dotenv_path, override=False)
