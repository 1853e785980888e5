import pyperclip
import pytest

from codeclip import cli, core


@pytest.fixture
def clipboard(monkeypatch):
    copied = []
    monkeypatch.setattr(core.pyperclip, "copy", copied.append)
    return copied


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    root = tmp_path / "proj"
    root.mkdir()
    (root / "a.txt").write_text("hello", encoding="utf-8")
    monkeypatch.chdir(root)
    return root


@pytest.fixture
def no_repo(monkeypatch):
    monkeypatch.setattr(cli, "find_repo_root", lambda start: None)


def _answer(monkeypatch, reply):
    prompts = []

    def fake_input(prompt=""):
        prompts.append(prompt)
        if isinstance(reply, BaseException):
            raise reply
        return reply

    monkeypatch.setattr("builtins.input", fake_input)
    return prompts


def test_declined_prompt_cancels(workdir, no_repo, clipboard, monkeypatch, capsys):
    prompts = _answer(monkeypatch, "n")
    cli.main([])
    assert prompts == [cli.PROMPT]
    assert clipboard == []
    assert "Operation cancelled." in capsys.readouterr().out


@pytest.mark.parametrize("reply", ["", "yes", "no", " y", "y "])
def test_anything_but_y_cancels(workdir, no_repo, clipboard, monkeypatch, reply):
    _answer(monkeypatch, reply)
    cli.main([])
    assert clipboard == []


def test_eof_on_prompt_cancels(workdir, no_repo, clipboard, monkeypatch, capsys):
    _answer(monkeypatch, EOFError())
    cli.main([])
    assert clipboard == []
    assert "Operation cancelled." in capsys.readouterr().out


def test_confirmed_prompt_copies(workdir, no_repo, clipboard, monkeypatch, capsys):
    _answer(monkeypatch, "Y")
    cli.main([])
    assert clipboard == ["--- Root Directory: proj ---\n\n--- File: a.txt ---\nhello"]
    assert "Codebase context copied to clipboard!" in capsys.readouterr().out


def test_yes_flag_skips_prompt(workdir, no_repo, clipboard, monkeypatch):
    prompts = _answer(monkeypatch, "n")
    cli.main(["--yes"])
    assert prompts == []
    assert len(clipboard) == 1


def test_repository_found_skips_prompt(workdir, clipboard, monkeypatch):
    (workdir / ".git").mkdir()
    (workdir / ".gitignore").write_text("a.txt\n", encoding="utf-8")
    (workdir / "b.txt").write_text("kept", encoding="utf-8")
    prompts = _answer(monkeypatch, "n")

    cli.main([])

    assert prompts == []
    assert clipboard == [
        "--- Root Directory: proj ---\n"
        "\n--- File: .gitignore ---\na.txt\n"
        "\n--- File: b.txt ---\nkept"
    ]


def test_truncation_notice(workdir, no_repo, clipboard, capsys):
    (workdir / "big.txt").write_text("x" * 500, encoding="utf-8")
    cli.main(["-y", "--max-bytes", "100"])
    out = capsys.readouterr().out
    assert "Output truncated" in out
    assert "Partial codebase copied to clipboard." in out
    assert "big.txt" not in clipboard[0]


def test_clipboard_failure_is_reported(workdir, no_repo, monkeypatch, capsys):
    def broken(text):
        raise pyperclip.PyperclipException("no copy/paste mechanism")

    monkeypatch.setattr(core.pyperclip, "copy", broken)
    cli.main(["-y"])
    captured = capsys.readouterr()
    assert "Failed to write to clipboard: no copy/paste mechanism" in captured.err
    assert "copied to clipboard" not in captured.out


def test_unexpected_error_exits_nonzero(workdir, no_repo, clipboard, monkeypatch, capsys):
    def explode(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(cli, "build_context", explode)
    with pytest.raises(SystemExit) as exc:
        cli.main(["-y"])
    assert exc.value.code == 1
    assert "Unexpected error: boom" in capsys.readouterr().err


def test_keyboard_interrupt_exits_nonzero(workdir, no_repo, clipboard, monkeypatch, capsys):
    _answer(monkeypatch, KeyboardInterrupt())
    with pytest.raises(SystemExit) as exc:
        cli.main([])
    assert exc.value.code == 1
    assert "Cancelled." in capsys.readouterr().err


def test_max_bytes_must_be_positive(workdir, clipboard):
    with pytest.raises(SystemExit) as exc:
        cli.main(["--max-bytes", "0"])
    assert exc.value.code == 2
    assert clipboard == []


def test_verbose_reports_skips(workdir, no_repo, clipboard, capsys):
    (workdir / "logo.png").write_bytes(b"\x89PNG")
    cli.main(["-y", "-v"])
    out = capsys.readouterr().out
    assert "[codeclip] - Skipping binary logo.png" in out
    assert "[codeclip] No git repository above" in out
