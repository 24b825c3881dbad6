"""Utilities for reading the ~/.autopersona/.env file."""

from __future__ import annotations

from pathlib import Path

from autopersona.config.constants import ENV_FILE


def read_env_file(env_path: Path | None = None) -> dict[str, str]:
    """Parse the .env file and return key-value pairs.

    Strips inline comments (``# ...``), surrounding quotes and whitespace.
    """
    if env_path is None:
        env_path = ENV_FILE

    result: dict[str, str] = {}
    if not env_path.exists():
        return result

    try:
        for line in env_path.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            k, _, v = line.partition("=")
            k = k.strip()
            if k.startswith("export "):
                k = k[len("export "):].strip()
            if " #" in v:
                v = v[: v.index(" #")]
            v = v.strip()
            if len(v) >= 2 and v[0] == v[-1] and v[0] in "\"'":
                v = v[1:-1]
            result[k] = v
    except OSError:
        pass

    return result
