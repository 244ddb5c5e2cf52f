import pytest
import sys
from pathlib import Path
from unittest.mock import Mock

# Add project root to Python path
root_path = str(Path(__file__).parent.parent.parent)
if root_path not in sys.path:
    sys.path.append(root_path)

from src.modules.shutdown.registrar import ShutdownRegistrar
from tests.utils.fakes import FakeServer


@pytest.fixture(autouse=True)
def reset_registrar():
    """Each test gets a fresh process-wide registrar."""
    ShutdownRegistrar.reset()
    yield
    ShutdownRegistrar.reset()

@pytest.fixture
def mock_logger():
    """Create a mock logger."""
    logger = Mock()
    logger.log_trace = Mock()
    logger.log_info = Mock()
    logger.log_error = Mock()
    logger.log_warning = Mock()
    logger.log_transition = Mock()
    return logger

@pytest.fixture
def exit_process():
    return Mock()

@pytest.fixture
def fake_server():
    return FakeServer()
