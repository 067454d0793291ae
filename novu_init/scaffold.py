"""Clone and configure the Next.js starter project."""

import logging
import shutil
import subprocess
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import dotenv_values, set_key
from rich.console import Console
from rich.prompt import Confirm

from .config import ENV_FILENAME, INSTALL_CMD, get_settings
from .exceptions import SetupError
from .onboarding import NovuAccount

logger = logging.getLogger(__name__)

console = Console()

SUBSCRIBER_ID_VAR = "NEXT_PUBLIC_NOVU_SUBSCRIBER_ID"


@dataclass
class Project:
    path: Path
    subscriber_id: str


def repo_name(repo_url: str) -> str:
    """``https://github.com/org/foo.git`` -> ``foo``."""
    name = repo_url.rstrip("/").rsplit("/", 1)[-1]
    return name[:-4] if name.endswith(".git") else name


# -----------------------------------------------------------------
# .env files
# -----------------------------------------------------------------


def write_env_file(variables: Dict[str, str], directory: Path, filename: str = ENV_FILENAME) -> Path:
    """Set ``KEY=value`` entries in ``directory/filename``.

    Keys already in the file are replaced in place; other lines are kept.
    """
    path = Path(directory) / filename
    for key, value in variables.items():
        set_key(str(path), key, value, quote_mode="never")
    logger.info("Wrote %s", path)
    return path


def read_env_file(path: Path) -> Dict[str, str]:
    """Parse a dotenv file. Missing files read as empty."""
    if not Path(path).is_file():
        return {}
    return {key: value for key, value in dotenv_values(path).items() if value is not None}


def project_env(account: NovuAccount, subscriber_id: str) -> Dict[str, str]:
    return {
        "NEXT_PUBLIC_NOVU_APPLICATION_IDENTIFIER": account.identifier,
        "NOVU_SECRET_KEY": account.api_key,
        SUBSCRIBER_ID_VAR: subscriber_id,
    }


# -----------------------------------------------------------------
# Commands
# -----------------------------------------------------------------


def _run(cmd: List[str], cwd: Optional[Path], what: str, timeout: Optional[int] = None) -> None:
    logger.info("Running %s", " ".join(cmd))
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError:
        raise SetupError(f"{what} failed: '{cmd[0]}' is not installed or not on PATH")
    except subprocess.TimeoutExpired:
        raise SetupError(f"{what} timed out after {timeout}s")

    if result.returncode != 0:
        raise SetupError(
            f"{what} failed (exit {result.returncode}):\n{(result.stderr or result.stdout)[-500:]}"
        )


def clone_repo(repo_url: str, dest: Path) -> None:
    _run(["git", "clone", repo_url, str(dest)], cwd=dest.parent, what="Cloning repository")


def install_deps(project_dir: Path) -> None:
    _run(INSTALL_CMD, cwd=project_dir, what="Installing dependencies", timeout=get_settings().install_timeout)


# -----------------------------------------------------------------
# Project setup
# -----------------------------------------------------------------


def _reuse_project(account: NovuAccount, project_dir: Path) -> Project:
    """Keep an existing checkout; keep its subscriber ID if it has one."""
    env_path = project_dir / ENV_FILENAME
    subscriber_id = read_env_file(env_path).get(SUBSCRIBER_ID_VAR)
    if not subscriber_id:
        subscriber_id = str(uuid.uuid4())
        write_env_file(project_env(account, subscriber_id), project_dir)
        console.print(f"  [green]✓[/green] {ENV_FILENAME} file created with Novu configuration")
    return Project(path=project_dir, subscriber_id=subscriber_id)


def setup_project(
    account: NovuAccount,
    parent_dir: Path,
    repo_url: Optional[str] = None,
    assume_yes: bool = False,
) -> Project:
    """Clone the starter, write its env file and install dependencies.

    Raises:
        SetupError: If ``parent_dir`` is not a directory, or cloning or
            installing fails.
    """
    console.print("\n[bold blue]\U0001f680 Setting up your Next.js project...[/bold blue]")

    if not Path(parent_dir).is_dir():
        raise SetupError(f"Target directory does not exist: {parent_dir}")

    repo_url = repo_url or get_settings().repo_url
    name = repo_name(repo_url)
    project_dir = Path(parent_dir).resolve() / name

    if project_dir.exists():
        console.print(f"[yellow]The directory {name} already exists.[/yellow]")
        if not assume_yes and Confirm.ask("Do you want to overwrite it?", default=False):
            shutil.rmtree(project_dir)
        else:
            console.print("[yellow]Using existing directory.[/yellow]")
            return _reuse_project(account, project_dir)

    with console.status(f"[dim]Cloning repository from {repo_url}...[/dim]"):
        clone_repo(repo_url, project_dir)
    console.print("  [green]✓[/green] Repository cloned successfully")

    subscriber_id = str(uuid.uuid4())
    write_env_file(project_env(account, subscriber_id), project_dir)
    console.print(f"  [green]✓[/green] {ENV_FILENAME} file created with Novu configuration and subscriber ID")

    with console.status("[dim]Installing dependencies...[/dim]"):
        install_deps(project_dir)
    console.print("  [green]✓[/green] Dependencies installed successfully")

    return Project(path=project_dir, subscriber_id=subscriber_id)
