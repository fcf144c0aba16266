"""Shared pytest fixtures."""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in list(os.environ):
        if name.startswith("AI_PROOFREAD_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.setenv("AI_PROOFREAD_LOG_DIR", str(tmp_path / "logs"))


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "config"
    directory.mkdir()
    (directory / "prompts.json").write_text(
        json.dumps(
            [
                {"name": "Fix Grammar", "prompt": "Correct grammar"},
                {"name": "Make Formal", "prompt": "Rewrite formally"},
            ]
        ),
        encoding="utf-8",
    )
    return directory


@pytest.fixture
def authinfo(tmp_path: Path) -> Path:
    path = tmp_path / ".authinfo"
    path.write_text(
        "machine imap.example.org login me password hunter2\n"
        "machine api.openai.com login apikey password sk-from-authinfo\n",
        encoding="utf-8",
    )
    return path
