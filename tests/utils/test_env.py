import os
from pathlib import Path
from unittest.mock import patch

from utils.env import find_project_root, load_project_dotenv

# --- find_project_root --- #


def test_find_project_root_in_start_dir(tmp_path: Path):
    (tmp_path / "pyproject.toml").touch()
    assert find_project_root(start=tmp_path) == tmp_path


def test_find_project_root_several_levels_up(tmp_path: Path):
    (tmp_path / "pyproject.toml").touch()
    start_dir = tmp_path / "a" / "b" / "c"
    start_dir.mkdir(parents=True)
    assert find_project_root(start=start_dir) == tmp_path


# --- load_project_dotenv --- #


@patch("utils.env.load_dotenv")
def test_missing_env_file_is_not_loaded(mock_load_dotenv, tmp_path: Path):
    (tmp_path / "pyproject.toml").touch()

    assert load_project_dotenv(start=tmp_path) is False
    mock_load_dotenv.assert_not_called()


@patch("utils.env.load_dotenv", return_value=True)
def test_env_file_is_loaded_without_override(mock_load_dotenv, tmp_path: Path):
    (tmp_path / "pyproject.toml").touch()
    (tmp_path / ".env").touch()

    assert load_project_dotenv(start=tmp_path) is True
    mock_load_dotenv.assert_called_once_with(dotenv_path=tmp_path / ".env", override=False)


def test_process_environment_wins(tmp_path: Path, monkeypatch):
    (tmp_path / "pyproject.toml").touch()
    (tmp_path / ".env").write_text("REBALANCER_DECISION_INTERVAL=5\nREBALANCER_LOW_STOCK_THRESHOLD=40\n")
    monkeypatch.setenv("REBALANCER_DECISION_INTERVAL", "90")
    monkeypatch.delenv("REBALANCER_LOW_STOCK_THRESHOLD", raising=False)

    load_project_dotenv(start=tmp_path)

    assert os.environ["REBALANCER_DECISION_INTERVAL"] == "90"
    assert os.environ["REBALANCER_LOW_STOCK_THRESHOLD"] == "40"
