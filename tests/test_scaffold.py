"""Tests for starter project scaffolding."""

import subprocess
import uuid
from pathlib import Path
from unittest.mock import patch

import pytest

from novu_init.exceptions import SetupError
from novu_init.onboarding import NovuAccount
from novu_init.scaffold import (
    SUBSCRIBER_ID_VAR,
    clone_repo,
    read_env_file,
    repo_name,
    setup_project,
    write_env_file,
)

REPO = "https://github.com/iampearceman/novu-nextjs-init.git"


@pytest.fixture
def account() -> NovuAccount:
    return NovuAccount(api_key="sk_test_123", identifier="app-123", name="Development", region="US")


def _fake_clone(repo_url: str, dest: Path) -> None:
    dest.mkdir()


# ── env files ─────────────────────────────────────────────────────────────────


def test_env_file_is_flat_key_value(tmp_path) -> None:
    path = write_env_file({"A": "1", "B": "two"}, tmp_path)

    assert path == tmp_path / ".env.local"
    assert path.read_text() == "A=1\nB=two\n"


def test_env_file_update_keeps_other_lines(tmp_path) -> None:
    path = tmp_path / ".env.local"
    path.write_text("# mine\nKEEP=yes\nA=old\n")

    write_env_file({"A": "new", "B": "2"}, tmp_path)

    assert path.read_text() == "# mine\nKEEP=yes\nA=new\nB=2\n"


def test_read_env_file_skips_comments_and_blanks(tmp_path) -> None:
    path = tmp_path / ".env.local"
    path.write_text("# generated\n\nA=1\nURL=https://x.test/?a=b\n")

    assert read_env_file(path) == {"A": "1", "URL": "https://x.test/?a=b"}


def test_read_env_file_unquotes_values(tmp_path) -> None:
    path = tmp_path / ".env.local"
    path.write_text(
        'NEXT_PUBLIC_NOVU_SUBSCRIBER_ID="sub-quoted"\n'
        "SINGLE='one two'\n"
        "export NOVU_SECRET_KEY=sk_live_abc\n"
        "INLINE=value # trailing comment\n"
    )

    assert read_env_file(path) == {
        SUBSCRIBER_ID_VAR: "sub-quoted",
        "SINGLE": "one two",
        "NOVU_SECRET_KEY": "sk_live_abc",
        "INLINE": "value",
    }


def test_existing_project_keeps_quoted_subscriber_id(tmp_path, account) -> None:
    existing = tmp_path / "novu-nextjs-init"
    existing.mkdir()
    (existing / ".env.local").write_text(f'{SUBSCRIBER_ID_VAR}="sub-quoted"\n')

    with patch("novu_init.scaffold.clone_repo") as clone:
        project = setup_project(account, tmp_path, REPO, assume_yes=True)

    clone.assert_not_called()
    assert project.subscriber_id == "sub-quoted"


def test_read_missing_env_file_is_empty(tmp_path) -> None:
    assert read_env_file(tmp_path / "nope") == {}


def test_repo_name_strips_git_suffix() -> None:
    assert repo_name(REPO) == "novu-nextjs-init"
    assert repo_name("https://example.test/org/starter/") == "starter"


# ── setup_project ─────────────────────────────────────────────────────────────


def test_fresh_project_is_cloned_configured_and_installed(tmp_path, account) -> None:
    with patch("novu_init.scaffold.clone_repo", side_effect=_fake_clone) as clone, \
            patch("novu_init.scaffold.install_deps") as install:
        project = setup_project(account, tmp_path, REPO)

    assert project.path == tmp_path.resolve() / "novu-nextjs-init"
    clone.assert_called_once_with(REPO, project.path)
    install.assert_called_once_with(project.path)

    env = read_env_file(project.path / ".env.local")
    assert env == {
        "NEXT_PUBLIC_NOVU_APPLICATION_IDENTIFIER": "app-123",
        "NOVU_SECRET_KEY": "sk_test_123",
        SUBSCRIBER_ID_VAR: project.subscriber_id,
    }
    assert uuid.UUID(project.subscriber_id).version == 4


def test_existing_project_keeps_subscriber_id(tmp_path, account) -> None:
    existing = tmp_path / "novu-nextjs-init"
    existing.mkdir()
    write_env_file({SUBSCRIBER_ID_VAR: "sub-existing"}, existing)

    with patch("novu_init.scaffold.clone_repo") as clone:
        project = setup_project(account, tmp_path, REPO, assume_yes=True)

    clone.assert_not_called()
    assert project.subscriber_id == "sub-existing"


def test_existing_project_without_env_gets_one(tmp_path, account) -> None:
    (tmp_path / "novu-nextjs-init").mkdir()

    with patch("novu_init.scaffold.Confirm.ask", return_value=False):
        project = setup_project(account, tmp_path, REPO)

    env = read_env_file(project.path / ".env.local")
    assert env[SUBSCRIBER_ID_VAR] == project.subscriber_id


def test_overwrite_replaces_existing_project(tmp_path, account) -> None:
    existing = tmp_path / "novu-nextjs-init"
    existing.mkdir()
    (existing / "stale.txt").write_text("old")

    with patch("novu_init.scaffold.Confirm.ask", return_value=True), \
            patch("novu_init.scaffold.clone_repo", side_effect=_fake_clone) as clone, \
            patch("novu_init.scaffold.install_deps"):
        project = setup_project(account, tmp_path, REPO)

    clone.assert_called_once()
    assert not (project.path / "stale.txt").exists()


def test_clone_failure_is_setup_error(tmp_path) -> None:
    failed = subprocess.CompletedProcess(args=[], returncode=128, stdout="", stderr="fatal: repository not found")

    with patch("novu_init.scaffold.subprocess.run", return_value=failed):
        with pytest.raises(SetupError, match="repository not found"):
            clone_repo(REPO, tmp_path / "novu-nextjs-init")


def test_missing_target_directory_is_setup_error(tmp_path, account) -> None:
    with patch("novu_init.scaffold.subprocess.run") as run:
        with pytest.raises(SetupError, match="does not exist"):
            setup_project(account, tmp_path / "missing", REPO)

    run.assert_not_called()


def test_missing_tool_is_setup_error(tmp_path, account) -> None:
    with patch("novu_init.scaffold.subprocess.run", side_effect=FileNotFoundError("git")):
        with pytest.raises(SetupError, match="not installed"):
            setup_project(account, tmp_path, REPO)
