"""GitHub Actions step outputs."""

import json
from pathlib import Path
from typing import Any

import structlog

logger = structlog.get_logger()


def write_github_outputs(github_output: str | None, values: dict[str, Any]) -> None:
    """Append ``key=value`` lines to the GITHUB_OUTPUT file, if one is set.

    Lists and dicts are written as compact JSON.
    """
    if not github_output:
        return

    lines = []
    for key, value in values.items():
        if isinstance(value, (list, dict)):
            value = json.dumps(value, separators=(",", ":"))
        lines.append(f"{key}={value}\n")

    with Path(github_output).open("a", encoding="utf-8") as f:
        f.writelines(lines)
    logger.debug("Wrote GitHub Actions outputs", keys=list(values))
