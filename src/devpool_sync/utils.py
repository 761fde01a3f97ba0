"""
Utility functions for the devpool synchronization tool.
"""

from __future__ import annotations

import logging
import re
import subprocess
from subprocess import CompletedProcess


class PassError(Exception):
    """Base class for pass-related errors."""


class InvalidPassPathError(PassError):
    """Raised when the pass path format is invalid or not in the password store."""


def setup_logging(*, verbose: bool = False) -> None:
    """Configure logging for the sync run."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(), logging.FileHandler("devpool-sync.log", mode="a")],
    )


def get_pass_value(pass_path: str) -> str:
    """Get a secret from the pass utility at the specified path.

    Raises:
        InvalidPassPathError: If the path is malformed or not in the password store
        PassError: If pass fails for any other reason
    """
    if not re.fullmatch(r"(?:[A-Za-z0-9_-]+)(?:/[A-Za-z0-9_-]+)*", pass_path):
        msg = f"Invalid pass path: {pass_path}"
        raise InvalidPassPathError(msg)

    try:
        result: CompletedProcess[str] = subprocess.run(  # noqa: S603
            ["pass", pass_path], capture_output=True, text=True, check=True
        )
    except FileNotFoundError as e:
        msg = "The pass utility is not installed"
        raise PassError(msg) from e
    except subprocess.CalledProcessError as e:
        if "not in the password store" in e.stderr.lower():
            msg = f"Pass path '{pass_path}' not found."
            raise InvalidPassPathError(msg) from e
        msg = f"Failed to get value from pass at '{pass_path}' (return code {e.returncode}): {e.stderr.strip()}"
        raise PassError(msg) from e

    return result.stdout.strip()
