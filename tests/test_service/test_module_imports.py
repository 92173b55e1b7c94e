"""Each package imports cleanly in a fresh interpreter, whatever is imported first."""

import os
import subprocess
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]


@pytest.mark.parametrize(
    "module",
    [
        "workspace_assistant.service.app",
        "workspace_assistant.audit",
        "workspace_assistant.tools",
        "workspace_assistant.governance",
        "workspace_assistant.config",
        "workspace_assistant.config.policy_loader",
        "workspace_assistant.orchestrator",
        "workspace_assistant.telemetry",
    ],
)
def test_fresh_import(module: str, tmp_path: Path) -> None:
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(
        filter(None, [str(PROJECT_ROOT / "src"), env.get("PYTHONPATH")])
    )
    env["ASSISTANT_LOG_DIR"] = str(tmp_path / "logs")

    completed = subprocess.run(
        [sys.executable, "-c", f"import {module}"],
        cwd=PROJECT_ROOT,
        env=env,
        capture_output=True,
        text=True,
        timeout=60,
    )

    assert completed.returncode == 0, completed.stderr
