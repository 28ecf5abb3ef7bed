from __future__ import annotations

import runpy
import sys
from pathlib import Path

import pytest


def test_module_entrypoint_exposes_run() -> None:
    namespace = runpy.run_path(
        str(Path("src/containerrepl/__main__.py")),
        run_name="containerrepl_entrypoint_test",
    )
    assert callable(namespace["run"])


def test_python_dash_m_prints_help_and_exits_cleanly(monkeypatch, capsys) -> None:
    monkeypatch.setattr(sys, "argv", ["container-repl", "--help"])

    with pytest.raises(SystemExit) as excinfo:
        runpy.run_module("containerrepl", run_name="__main__", alter_sys=False)

    assert excinfo.value.code == 0
    assert "container-repl" in capsys.readouterr().out
