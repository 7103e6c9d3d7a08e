import pytest
from PySide6.QtCore import QCoreApplication

from rowpager.utils import flow_log


@pytest.fixture(scope='session', autouse=True)
def qapp():
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


@pytest.fixture(autouse=True)
def quiet_trace_logs(monkeypatch):
    monkeypatch.setattr(flow_log, 'trace_enabled', lambda: False)
    flow_log.reset_throttle()
