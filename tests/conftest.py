import sys
from pathlib import Path

import pytest

SERVER_DIR = Path(__file__).resolve().parents[1] / "server"
if str(SERVER_DIR) not in sys.path:
    sys.path.insert(0, str(SERVER_DIR))

from chart_store import PeriodontalChart  # noqa: E402
from dictation_session import DictationSession  # noqa: E402
from session_context import SessionContext  # noqa: E402


@pytest.fixture
def chart():
    return PeriodontalChart()


@pytest.fixture
def session(chart):
    return DictationSession(chart=chart, context=SessionContext(), selected_tooth=None)
