import os
import tempfile

# Must be set before paygate.repo creates its engine
os.environ.setdefault("PAYGATE_DATABASE_URL", f"sqlite:///{tempfile.mkdtemp()}/paygate-test.db")

import pytest
from fastapi.testclient import TestClient

from paygate.main import app
from paygate.repo import Base, engine


@pytest.fixture
def api():
    with TestClient(app) as c:
        yield c
    Base.metadata.drop_all(engine)
