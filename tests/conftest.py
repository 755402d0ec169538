"""Pytest configuration and shared fixtures."""
import os
import tempfile
from pathlib import Path

# Settings are read at import time, so the environment must be set first
_TEST_DATA_DIR = Path(tempfile.mkdtemp(prefix="testgen-tests-"))
os.environ["OPENAI_API_KEY"] = "sk-test-key-1234567890abcdef"
os.environ["DATABASE_PATH"] = str(_TEST_DATA_DIR / "test.db")
os.environ["STORAGE_ROOT"] = str(_TEST_DATA_DIR / "pdfs")
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"

import fitz  # noqa: E402
import pytest  # noqa: E402
from unittest.mock import MagicMock  # noqa: E402

from fastapi.testclient import TestClient  # noqa: E402

from testgen.auth import create_access_token  # noqa: E402
from testgen.db import models  # noqa: E402,F401
from testgen.db.database import Base, SessionLocal, engine, get_db  # noqa: E402
from testgen.dependencies import get_generation_service, get_storage  # noqa: E402
from testgen.main import app  # noqa: E402
from testgen.services.generation_service import GenerationService  # noqa: E402
from testgen.services.storage import LocalBlobStorage  # noqa: E402

OWNER_ID = "user_1"
OTHER_OWNER_ID = "user_2"

VALID_RESPONSE = (
    '```json\n{"questions":[{"question":"What is 2+2?","options":["3","4","5","6"],'
    '"correct_answer":1,"explanation":"Basic arithmetic sum."}]}\n```'
)

BIOLOGY_LINES = [
    "Photosynthesis converts light energy into chemical energy.",
    "Chlorophyll absorbs mostly blue and red wavelengths of light.",
    "The Calvin cycle fixes carbon dioxide into sugars in the stroma.",
]

HISTORY_LINES = [
    "The printing press spread across Europe in the fifteenth century.",
    "Cheaper books increased literacy among merchants and artisans.",
]


def build_pdf(pages):
    """Build an in-memory PDF; each page is a list of text lines."""
    doc = fitz.open()
    for lines in pages:
        page = doc.new_page()
        y = 72
        for line in lines:
            page.insert_text((72, y), line, fontsize=11)
            y += 16
    data = doc.tobytes()
    doc.close()
    return data


def completion(content):
    """Fake chat-completions response."""
    return MagicMock(choices=[MagicMock(message=MagicMock(content=content))])


@pytest.fixture
def biology_pdf():
    return build_pdf([BIOLOGY_LINES[:2], BIOLOGY_LINES[2:]])


@pytest.fixture
def history_pdf():
    return build_pdf([HISTORY_LINES])


@pytest.fixture
def mock_openai_client():
    """Create a mock OpenAI client answering with one valid question."""
    client = MagicMock()
    client.chat.completions.create.return_value = completion(VALID_RESPONSE)
    return client


@pytest.fixture
def generation_service(mock_openai_client):
    return GenerationService(openai_client=mock_openai_client, sleep=lambda _: None)


@pytest.fixture
def db_session():
    """Create a test database session."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def storage(tmp_path):
    return LocalBlobStorage(tmp_path / "blobs")


@pytest.fixture
def client(db_session, storage, generation_service):
    """Create a test client with database, storage and LLM overrides."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_generation_service] = lambda: generation_service

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {create_access_token(OWNER_ID)}"}


@pytest.fixture
def other_auth_headers():
    return {"Authorization": f"Bearer {create_access_token(OTHER_OWNER_ID)}"}
