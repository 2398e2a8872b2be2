"""Subprocess utilities for teshuffle."""

import logging
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional, Union

from teshuffle.exceptions import CollaboratorError

logger = logging.getLogger(__name__)


def run_command(
    cmd: Union[str, List[str]],
    shell: bool = True,
    capture_output: bool = True,
    check: bool = True,
    timeout: Optional[int] = None,
    cwd: Optional[str] = None,
) -> subprocess.CompletedProcess:
    """
    Run an external command.

    Args:
        cmd: Command string or list
        shell: Run through shell
        capture_output: Capture stdout/stderr
        check: Raise CollaboratorError on a non-zero exit status
        timeout: Timeout in seconds
        cwd: Working directory

    Returns:
        CompletedProcess instance

    Raises:
        CollaboratorError: If the command fails and check is True
    """
    logger.debug(f"Running command: {cmd}")

    try:
        result = subprocess.run(
            cmd,
            shell=shell,
            capture_output=capture_output,
            text=True,
            timeout=timeout,
            cwd=cwd,
        )
    except subprocess.TimeoutExpired as e:
        logger.error(f"Command timed out after {timeout}s: {cmd}")
        raise CollaboratorError(f"Command timed out: {cmd}") from e
    except OSError as e:
        logger.error(f"Command failed: {e}")
        raise CollaboratorError(f"Command could not be started: {cmd}") from e

    if result.returncode != 0:
        logger.warning(f"Command returned {result.returncode}")
        if result.stderr:
            logger.warning(f"stderr: {result.stderr.strip()}")
        if check:
            raise CollaboratorError(
                f"Command failed with exit status {result.returncode}: {cmd}"
            )

    return result


def tool_path(tool_name: str, tool_dir: Optional[str] = None) -> str:
    """Resolve a tool name, optionally inside a given bin directory."""
    if tool_dir:
        return str(Path(tool_dir) / tool_name)
    return tool_name


def check_tool_installed(tool_name: str, tool_dir: Optional[str] = None) -> bool:
    """
    Check if a command-line tool is installed.

    Args:
        tool_name: Name of the tool
        tool_dir: Optional directory holding the tool

    Returns:
        True if tool is available
    """
    return shutil.which(tool_path(tool_name, tool_dir)) is not None


def require_tools(tools: List[str], tool_dir: Optional[str] = None) -> None:
    """
    Check that required tools are installed.

    Args:
        tools: List of tool names
        tool_dir: Optional directory holding the tools

    Raises:
        CollaboratorError: If any tool is missing
    """
    missing = [tool for tool in tools if not check_tool_installed(tool, tool_dir)]

    if missing:
        raise CollaboratorError(
            f"Missing required tools: {', '.join(missing)}. "
            "Please install them and ensure they are in your PATH (or use --where)."
        )

    logger.info(f"All required tools available: {', '.join(tools)}")
