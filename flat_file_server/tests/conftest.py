import shutil

import pytest
from fastapi.testclient import TestClient

from flat_file_server.config import ServerConfig
from flat_file_server.main import create_app
from flat_file_server.tests import INDEX_HTML, TEST_FILES_DIR, TEST_PUBLIC_DIR


@pytest.fixture(autouse=True)
def setup_and_teardown():
    """Setup and teardown for tests."""
    # Clean up any existing test directories
    shutil.rmtree(TEST_FILES_DIR, ignore_errors=True)
    shutil.rmtree(TEST_PUBLIC_DIR, ignore_errors=True)

    TEST_FILES_DIR.mkdir(exist_ok=True, parents=True)
    TEST_PUBLIC_DIR.mkdir(exist_ok=True, parents=True)
    (TEST_PUBLIC_DIR / "index.html").write_text(INDEX_HTML)

    yield

    shutil.rmtree(TEST_FILES_DIR, ignore_errors=True)
    shutil.rmtree(TEST_PUBLIC_DIR, ignore_errors=True)


@pytest.fixture
def config():
    return ServerConfig(files_root=TEST_FILES_DIR, public_root=TEST_PUBLIC_DIR)


@pytest.fixture
def app(config):
    return create_app(config)


@pytest.fixture
def client(app):
    # Entering the client runs the lifespan, which initializes storage
    with TestClient(app) as test_client:
        yield test_client
