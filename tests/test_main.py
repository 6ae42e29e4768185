"""End-to-end tests for the gitmux launcher flow."""

import os

import pytest

from gitmux.main import EXIT_TOOL_NOT_FOUND, main


class TestLauncherFlow:
    def test_opens_window_for_selection(self, fake_tools):
        tools = fake_tools(candidates=["/a/b/c", "/a/b/d"], choice="/a/b/c\n")

        assert main([]) == 0
        assert tools.recorded("fzf.stdin") == "/a/b/c\n/a/b/d\n"
        assert tools.args("fzf") == ["--preview", "tree -C {}"]
        assert tools.args("tmux") == ["new-window", "-c", "/a/b/c", "-n", "b/c"]

    def test_arguments_forwarded_to_enumerator(self, fake_tools):
        tools = fake_tools(candidates=["/a/b/c"], choice="/a/b/c\n")

        main(["--depth", "3", "$HOME/code", "with space"])

        assert tools.args("enumerator") == ["--depth", "3", "$HOME/code", "with space"]

    def test_trailing_slash_stripped_once(self, fake_tools):
        tools = fake_tools(candidates=["/a/b/c/"], choice="/a/b/c/\n")

        assert main([]) == 0
        assert tools.args("tmux") == ["new-window", "-c", "/a/b/c", "-n", "b/c"]

    def test_window_name_shortens_leading_segment(self, fake_tools, tmp_path):
        repo = tmp_path / "proj" / "repo"
        repo.mkdir(parents=True)
        tools = fake_tools(candidates=[str(repo)], choice=f"{repo}\n")

        assert main([]) == 0
        assert tools.args("tmux") == ["new-window", "-c", str(repo), "-n", "p/repo"]

    @pytest.mark.parametrize("status", [1, 2, 127])
    def test_enumerator_failure_exits_1(self, fake_tools, capsys, status):
        tools = fake_tools(candidates=["/a/b/c"], enumerator_exit=status, choice="/a/b/c\n")

        assert main([]) == 1
        assert "failed to list repositories" in capsys.readouterr().err
        assert tools.recorded("fzf.stdin") is None
        assert tools.recorded("tmux.args") is None

    def test_missing_enumerator_exits_1(self, fake_tools, monkeypatch, tmp_path, capsys):
        tools = fake_tools(candidates=["/a/b/c"], choice="/a/b/c\n")
        monkeypatch.setenv("GITMUX_ENUMERATOR", str(tmp_path / "nowhere" / "gitmux"))

        assert main([]) == 1
        assert capsys.readouterr().err.startswith("gitmux: ")
        assert tools.recorded("fzf.stdin") is None

    def test_empty_selection_exits_0_without_launch(self, fake_tools):
        tools = fake_tools(candidates=["/a/b/c"], choice="", selector_exit=130)

        assert main([]) == 0
        assert tools.recorded("fzf.stdin") == "/a/b/c\n"
        assert tools.recorded("tmux.args") is None

    def test_selector_status_ignored_when_output_present(self, fake_tools):
        tools = fake_tools(candidates=["/a/b/c"], choice="/a/b/c\n", selector_exit=1)

        assert main([]) == 0
        assert tools.args("tmux")[2] == "/a/b/c"

    def test_tmux_status_becomes_exit_status(self, fake_tools):
        fake_tools(candidates=["/a/b/c"], choice="/a/b/c\n", tmux_exit=3)

        assert main([]) == 3

    def test_missing_selector_exits_127(self, fake_tools, monkeypatch, tmp_path, capsys):
        tools = fake_tools(candidates=["/a/b/c"], choice="/a/b/c\n")
        monkeypatch.setenv("GITMUX_SELECTOR", str(tmp_path / "no-fzf"))

        assert main([]) == EXIT_TOOL_NOT_FOUND
        assert "command not found" in capsys.readouterr().err
        assert tools.recorded("tmux.args") is None

    def test_missing_tmux_exits_127(self, fake_tools, monkeypatch, tmp_path):
        fake_tools(candidates=["/a/b/c"], choice="/a/b/c\n")
        monkeypatch.setenv("GITMUX_TMUX", str(tmp_path / "no-tmux"))

        assert main([]) == EXIT_TOOL_NOT_FOUND

    def test_enumerator_output_stable_across_runs(self, fake_tools):
        tools = fake_tools(candidates=["/x/one", "/x/two"], choice="/x/one\n")

        main(["root"])
        first = tools.recorded("fzf.stdin")
        main(["root"])

        assert tools.recorded("fzf.stdin") == first

    def test_relative_selection_opened_as_absolute_path(self, fake_tools, tmp_path, monkeypatch):
        (tmp_path / "proj" / "repo").mkdir(parents=True)
        monkeypatch.chdir(tmp_path)
        tools = fake_tools(candidates=["proj/repo"], choice="proj/repo\n")

        assert main(["."]) == 0

        tmux_args = tools.args("tmux")
        assert os.path.isabs(tmux_args[2])
        assert tmux_args == ["new-window", "-c", os.path.join(os.getcwd(), "proj", "repo"), "-n", "p/repo"]

    def test_non_utf8_path_round_trips_to_tmux(self, fake_tools, make_script, tmp_path):
        tools = fake_tools()
        record_dir = tools.record_dir
        make_script("enumerate", f"printf '%s/caf\\351\\n%s/plain\\n' '{tmp_path}' '{tmp_path}'")
        make_script("fzf", (
            f"cat > '{record_dir}/fzf.stdin'\n"
            f"head -n 1 '{record_dir}/fzf.stdin'"
        ))
        selected = os.fsencode(str(tmp_path)) + b"/caf\xe9"

        assert main([]) == 0

        assert (record_dir / "fzf.stdin").read_bytes().startswith(selected + b"\n")
        tmux_args = (record_dir / "tmux.args").read_bytes().split(b"\n")
        assert tmux_args[:3] == [b"new-window", b"-c", selected]
        assert tmux_args[4].endswith(b"/caf\xe9")

    def test_failure_message_shown_at_critical_level(self, fake_tools, monkeypatch, capsys):
        monkeypatch.setenv("GITMUX_LOG_LEVEL", "CRITICAL")
        fake_tools(candidates=["/a/b/c"], enumerator_exit=2)

        assert main([]) == 1
        assert "failed to list repositories" in capsys.readouterr().err
