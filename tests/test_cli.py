"""Tests for the operator CLI in main.py."""

import sys

import pytest

import main
from auth.passwords import verify_password


def _run(monkeypatch: pytest.MonkeyPatch, *argv: str) -> int:
    monkeypatch.setattr(sys, "argv", ["pennant", *argv])
    with pytest.raises(SystemExit) as exc_info:
        main.main()
    return exc_info.value.code


def test_hash_password_output_verifies(monkeypatch, capsys) -> None:
    assert _run(monkeypatch, "hash-password", "--password", "s3cret-value") == 0
    printed = capsys.readouterr().out.strip()
    assert printed.startswith("s2:")
    assert verify_password("s3cret-value", printed)


def test_hash_password_prompt_mismatch(monkeypatch, capsys) -> None:
    answers = iter(["first", "second"])
    monkeypatch.setattr(main.getpass, "getpass", lambda prompt="": next(answers))
    assert _run(monkeypatch, "hash-password") == 1
    assert "do not match" in capsys.readouterr().err


def test_hash_password_rejects_empty(monkeypatch) -> None:
    assert _run(monkeypatch, "hash-password", "--password", "") == 1


def test_serve_runs_uvicorn_with_target(monkeypatch) -> None:
    import uvicorn

    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    assert _run(monkeypatch, "serve", "edge") == 0
    assert calls == [("edge.main:edge_app", {"host": "127.0.0.1", "port": 3000, "reload": False})]


def test_no_command_prints_help(monkeypatch, capsys) -> None:
    monkeypatch.setattr(sys, "argv", ["pennant"])
    main.main()
    assert "hash-password" in capsys.readouterr().out
