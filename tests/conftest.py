import os
import stat
from pathlib import Path

import pytest
from loguru import logger


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Drop GITMUX_* settings, never write the log file, undo PATH edits."""
    for name in list(os.environ):
        if name.startswith("GITMUX_"):
            monkeypatch.delenv(name)
    monkeypatch.setenv("GITMUX_NO_LOG_FILE", "1")
    monkeypatch.setenv("PATH", os.environ.get("PATH", ""))
    yield
    logger.remove()


@pytest.fixture
def make_script(tmp_path):
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()

    def _make(name: str, body: str) -> Path:
        path = bin_dir / name
        path.write_text("#!/bin/sh\n" + body + "\n")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return _make


class FakeTools:
    """Shell-script stand-ins for the enumerator, fzf and tmux.

    Each script records its argv (and fzf its stdin) under record_dir.
    """

    def __init__(self, record_dir: Path):
        self.record_dir = record_dir

    def recorded(self, name: str) -> str | None:
        path = self.record_dir / name
        return path.read_text() if path.exists() else None

    def args(self, tool: str) -> list[str] | None:
        text = self.recorded(f"{tool}.args")
        return None if text is None else text.splitlines()

    def tmux_calls(self) -> list[str]:
        """Every tmux invocation so far, arguments joined by spaces."""
        text = self.recorded("tmux.calls")
        return [] if text is None else text.splitlines()


@pytest.fixture
def fake_tools(tmp_path, make_script, monkeypatch):
    record_dir = tmp_path / "record"
    record_dir.mkdir()

    def _install(
        candidates: list[str] = (),
        enumerator_exit: int = 0,
        choice: str = "",
        selector_exit: int = 0,
        tmux_exit: int = 0,
    ) -> FakeTools:
        output = "".join(f"{c}\n" for c in candidates)
        enumerator = make_script("enumerate", (
            f"printf '%s\\n' \"$@\" > '{record_dir}/enumerator.args'\n"
            f"printf '%s' '{output}'\n"
            f"exit {enumerator_exit}"
        ))
        fzf = make_script("fzf", (
            f"cat > '{record_dir}/fzf.stdin'\n"
            f"printf '%s\\n' \"$@\" > '{record_dir}/fzf.args'\n"
            f"printf '%s' '{choice}'\n"
            f"exit {selector_exit}"
        ))
        tmux = make_script("tmux", (
            f"printf '%s\\n' \"$@\" > '{record_dir}/tmux.args'\n"
            f"printf '%s\\n' \"$*\" >> '{record_dir}/tmux.calls'\n"
            f"exit {tmux_exit}"
        ))
        monkeypatch.setenv("GITMUX_ENUMERATOR", str(enumerator))
        monkeypatch.setenv("GITMUX_SELECTOR", str(fzf))
        monkeypatch.setenv("GITMUX_TMUX", str(tmux))
        return FakeTools(record_dir)

    return _install
