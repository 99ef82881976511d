"""
Subprocess helper that streams output lines to the log as they arrive.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path

from shipflow.utils.logging import get_logger

logger = get_logger("shipflow.pipeline.process")


async def _pump(stream: asyncio.StreamReader, log: logging.Logger, level: int, label: str, tail: list[str]) -> None:
    while True:
        line = await stream.readline()
        if not line:
            return
        text = line.decode(errors="replace").rstrip()
        if text:
            log.log(level, f"[{label}] {text}")
            tail.append(text)
            del tail[:-20]


async def run_streaming(
    args: Sequence[str],
    *,
    cwd: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    log: logging.Logger | None = None,
    label: str | None = None,
) -> tuple[int, list[str]]:
    """
    Run ``args`` (no shell) and log stdout at INFO and stderr at WARNING, line by line.

    Returns:
        ``(exit_code, last_lines)`` where ``last_lines`` keeps the final output
        lines for error messages

    Raises:
        FileNotFoundError: The executable does not exist
    """
    log = log or logger
    label = label or Path(args[0]).name
    process = await asyncio.create_subprocess_exec(
        *args,
        cwd=str(cwd) if cwd is not None else None,
        env=dict(env) if env is not None else None,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    tail: list[str] = []
    try:
        await asyncio.gather(
            _pump(process.stdout, log, logging.INFO, label, tail),
            _pump(process.stderr, log, logging.WARNING, label, tail),
        )
        exit_code = await process.wait()
    except asyncio.CancelledError:
        if process.returncode is None:
            process.kill()
            await process.wait()
        raise
    return exit_code, tail
