"""Compile-and-run pipeline.

Builds a compile command and a run command for the current source file and
sends both to a TerminalSession. The run command is sent right after the
compile command without waiting for it to finish; ordering relies on the
shell reading its input line by line. A failed compile is therefore followed
by an attempt to run a stale or missing binary.
"""

import logging
from typing import Optional, Tuple

from .config import TaskConfig
from .exception import ConfigurationError
from .session import TerminalSession

logger = logging.getLogger(__name__)


def derive_output_name(source_file: str, task: TaskConfig) -> str:
    """Name of the compiled artifact

    Args:
        source_file: Source path as reported by the host (e.g. "./main.c")
        task: Build task; its explicit output wins when set

    Returns:
        Output name, the source truncated at its first "." after the first
        character so a leading "./" is skipped

    Raises:
        ConfigurationError: If no output is configured and the source has no extension
    """
    if task.output:
        return task.output

    sep = source_file.find(".", 1)
    if sep == -1:
        raise ConfigurationError(
            f"Cannot derive an output name from {source_file!r}; set task.output"
        )
    return source_file[:sep]


def build_commands(source_file: str, task: TaskConfig) -> Tuple[str, str]:
    """
    Build the compile and run command lines.

    Args:
        source_file: Source path to compile
        task: Build task (compiler command, extra args, optional output)

    Returns:
        Tuple of (compile_line, run_line)
    """
    output = "./" + derive_output_name(source_file, task)
    compile_line = " ".join([task.command, source_file, *task.args, "-o", output])
    run_line = " ".join([output])
    return compile_line, run_line


def compile_and_run(session: TerminalSession, source_file: Optional[str] = None) -> Tuple[str, str]:
    """
    Compile the current source file and run the result in the terminal.

    Args:
        session: Terminal session to drive (opened if necessary)
        source_file: Source path; defaults to the host's current file

    Returns:
        Tuple of (compile_line, run_line) that were sent

    Raises:
        ConfigurationError: If there is no source file or no output name
    """
    if source_file is None:
        source_file = session.host.current_file()
    if not source_file:
        raise ConfigurationError("No current file to compile")

    compile_line, run_line = build_commands(source_file, session.config.task)
    logger.info(f"[Pipeline] Compile and run: {compile_line!r} then {run_line!r}")

    session.open()
    session.run(compile_line)
    session.run(run_line)
    return compile_line, run_line
