"""External helper processes.

Some patches ship a migrator that has to run in a separate JVM. The
helpers here locate the java executable and start a child process whose
stdout and stderr are copied to the parent's streams by two background
pump threads. The pumps share nothing with the patch engine or with
each other.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
import threading
from pathlib import Path
from typing import BinaryIO

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 4 * 1024


def find_java() -> str:
    """Path of ``$JAVA_HOME/bin/java`` if executable, else ``"java"``."""
    home = os.environ.get("JAVA_HOME")
    if home:
        java = Path(home) / "bin" / "java"
        if java.is_file() and os.access(java, os.X_OK):
            return str(java.resolve())
    return "java"


def pump(source: BinaryIO, sink: BinaryIO) -> None:
    """Copy source to sink in 4 KiB chunks until end of stream."""
    while True:
        chunk = source.read(_CHUNK_SIZE)
        if not chunk:
            break
        sink.write(chunk)
        sink.flush()


def _pump_quietly(source: BinaryIO, sink: BinaryIO) -> None:
    try:
        pump(source, sink)
    except (OSError, ValueError) as e:
        # The child or the sink went away; nothing left to copy.
        logger.debug("Output pump stopped: %s", e)


def start_pump(source: BinaryIO, sink: BinaryIO) -> threading.Thread:
    """Start a daemon thread pumping source into sink."""
    thread = threading.Thread(target=_pump_quietly, args=(source, sink), name="io", daemon=True)
    thread.start()
    return thread


def run_helper(
    args: list[str],
    cwd: Path,
    stdout: BinaryIO | None = None,
    stderr: BinaryIO | None = None,
) -> tuple[subprocess.Popen, list[threading.Thread]]:
    """Start a helper process and drain its output in the background.

    Args:
        args: Command line, e.g. ``[find_java(), "-jar", "migrator.jar"]``.
        cwd: Working directory of the child.
        stdout: Sink for the child's stdout. Defaults to our stdout.
        stderr: Sink for the child's stderr. Defaults to our stderr.

    Returns:
        The process and its two pump threads. Callers wait on the
        process; the pumps end on their own at end of stream.
    """
    logger.debug("Running helper: %s", " ".join(args))
    process = subprocess.Popen(
        args,
        cwd=str(cwd),
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
    )
    pumps = [
        start_pump(process.stdout, stdout or sys.stdout.buffer),
        start_pump(process.stderr, stderr or sys.stderr.buffer),
    ]
    return process, pumps


def run_migrator(
    jar: Path,
    cwd: Path,
    stdout: BinaryIO | None = None,
    stderr: BinaryIO | None = None,
) -> int:
    """Run a staged migrator jar to completion and return its exit code."""
    process, pumps = run_helper([find_java(), "-jar", str(jar)], cwd, stdout, stderr)
    code = process.wait()
    for thread in pumps:
        thread.join()
    logger.info("Migrator %s exited with code %d", jar, code)
    return code
