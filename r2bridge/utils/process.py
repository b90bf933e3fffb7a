#!/usr/bin/env python3
"""Process helpers for reaping radare2 children."""

import subprocess

import psutil

from ..core.constants import TERMINATE_GRACE_SECONDS
from .logger import get_logger

logger = get_logger(__name__)


def terminate_process_tree(
    process: subprocess.Popen, grace: float = TERMINATE_GRACE_SECONDS
) -> None:
    """
    Terminate a child process and anything it spawned, then reap it.

    radare2 may fork helpers (e.g. for ``!`` commands or debugger targets),
    so the whole tree is signalled, not only the direct child.
    """
    if process.poll() is not None:
        return
    try:
        parent = psutil.Process(process.pid)
        procs = parent.children(recursive=True) + [parent]
    except psutil.NoSuchProcess:
        procs = []

    for proc in procs:
        try:
            proc.terminate()
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue

    _, alive = psutil.wait_procs(procs, timeout=grace)
    for proc in alive:
        try:
            logger.debug(f"Killing unresponsive process {proc.pid}")
            proc.kill()
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue

    try:
        process.wait(timeout=grace)
    except subprocess.TimeoutExpired:
        logger.warning(f"radare2 process {process.pid} did not exit after kill")


__all__ = ["terminate_process_tree"]
