# tests/conftest.py
"""
Pytest configuration and fixtures.
Adds src to sys.path so `import researchquest` works without an install.
"""

import os
import sys
import tempfile
from pathlib import Path

import pytest

project_root = Path(__file__).parent.parent
src_root = project_root / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))

# Route modules build their store and log files at import time; keep both
# out of the working tree.
_scratch = Path(tempfile.mkdtemp(prefix="researchquest-tests-"))
os.environ.setdefault("RESEARCHQUEST_DB_URL", f"sqlite:///{_scratch / 'app.db'}")
os.environ.setdefault("RESEARCHQUEST_LOG_DIR", str(_scratch / "logs"))
for _token in (
    "DISCORD_BOT_TOKEN",
    "SLACK_BOT_TOKEN",
    "REDDIT_CLIENT_ID",
    "REDDIT_CLIENT_SECRET",
    "REDDIT_REFRESH_TOKEN",
    "CORE_API_KEY",
    "HUGGINGFACE_API_KEY",
):
    os.environ.pop(_token, None)


@pytest.fixture
def store(tmp_path: Path):
    from researchquest.infrastructure.stores.entity_store import SqlAlchemyEntityStore

    entity_store = SqlAlchemyEntityStore(db_url=f"sqlite:///{tmp_path / 'researchquest.db'}")
    yield entity_store
    entity_store.close()


@pytest.fixture
def alice():
    from researchquest.application.services.session_context import SessionContext

    return SessionContext.for_user("u-alice", display_name="Alice", email="alice@example.org")


@pytest.fixture
def bob():
    from researchquest.application.services.session_context import SessionContext

    return SessionContext.for_user("u-bob", display_name="Bob")
