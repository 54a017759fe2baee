# ccsclient/tests/conftest.py
# ruff: noqa: E402
from __future__ import annotations

import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[2]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from ccsclient.interactor import make_contest


@pytest.fixture()
def contest_routes() -> dict[str, object]:
    """Routes a bound client needs: the contest lookup performed on connect."""

    return {'contests/demo': make_contest()}


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's CCS_* variables from leaking into settings tests."""

    for name in ('CCS_BASE_URL', 'CCS_USERNAME', 'CCS_PASSWORD', 'CCS_CONTEST_ID', 'CCS_INSECURE', 'CCS_TIMEOUT'):
        monkeypatch.delenv(name, raising=False)
