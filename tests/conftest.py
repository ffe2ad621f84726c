"""
Shared fixtures: in-memory stores, a scripted LLM client and an API test client.
"""
import io
import sys
from pathlib import Path
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).parent.parent))

from wardrobe_service.core.auth import User, MongoIdentityProvider  # noqa: E402
from wardrobe_service.core.storage import LocalObjectStore  # noqa: E402
from wardrobe_service.db.records import RecordStore, matches  # noqa: E402
from wardrobe_service.observability import reset_metrics  # noqa: E402

SIGNING_SECRET = "test-signing-secret"


class FakeLLMClient:
    """Scripted stand-in for LLMClient: returns `reply` or raises `error`."""

    provider = "openai"
    model = "test-model"

    def __init__(self, reply="", error=None):
        self.reply = reply
        self.error = error
        self.prompts = []

    async def generate_text(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


class MemoryRecordStore(RecordStore):
    """RecordStore kept in dicts."""

    def __init__(self):
        self.tables = {}

    def insert(self, table, row):
        self.tables.setdefault(table, []).append(dict(row))
        return dict(row)

    def select(self, table, filters=None, order_by=None, ascending=True, limit=None):
        rows = [dict(row) for row in self.tables.get(table, []) if matches(row, filters)]
        if order_by:
            rows.sort(key=lambda row: row.get(order_by) or "", reverse=not ascending)
        if limit:
            rows = rows[:limit]
        return rows

    def update(self, table, filters, values):
        changed = 0
        for row in self.tables.get(table, []):
            if matches(row, filters):
                row.update(values)
                changed += 1
        return changed

    def delete(self, table, filters):
        rows = self.tables.get(table, [])
        kept = [row for row in rows if not matches(row, filters)]
        self.tables[table] = kept
        return len(rows) - len(kept)


class MemoryCollection:
    """Just enough of a pymongo collection for the identity provider."""

    def __init__(self):
        self.docs = []

    def _match(self, doc, query):
        return all(doc.get(key) == value for key, value in query.items())

    def find_one(self, query):
        for doc in self.docs:
            if self._match(doc, query):
                return dict(doc)
        return None

    def insert_one(self, doc):
        self.docs.append(dict(doc))

    def delete_one(self, query):
        for index, doc in enumerate(self.docs):
            if self._match(doc, query):
                del self.docs[index]
                return

    def update_one(self, query, update, upsert=False):
        for doc in self.docs:
            if self._match(doc, query):
                doc.update(update["$set"])
                return
        if upsert:
            self.docs.append({**query, **update["$set"]})


def make_items(count=3):
    """Item summaries as the client sends them."""
    palette = [
        ("Navy Blazer", "Outerwear", "Business", "navy"),
        ("White Shirt", "Top", "Business", "white"),
        ("Grey Trousers", "Bottom", "Formal", "grey"),
        ("Oxford Shoes", "Shoes", "Formal", "brown"),
        ("Silk Tie", "Accessories", "Formal", None),
    ]
    items = []
    for index in range(count):
        name, category, dress_code, color = palette[index % len(palette)]
        items.append({
            "id": f"item-{index + 1}",
            "name": name,
            "category": category,
            "dress_code": dress_code,
            "color": color,
        })
    return items


def make_image(fmt="JPEG", color="blue"):
    """Encoded test photo bytes."""
    from PIL import Image

    img = Image.new("RGB", (64, 64), color=color)
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture(autouse=True)
def clean_metrics():
    reset_metrics()
    yield
    reset_metrics()


@pytest.fixture
def items():
    return make_items(3)


@pytest.fixture
def llm_client():
    return FakeLLMClient(reply='{"outfit": ["item-1", "item-2", "item-3"], "reasoning": "Sharp", "styling_tips": "Roll sleeves"}')


@pytest.fixture
def record_store():
    return MemoryRecordStore()


@pytest.fixture
def object_store(tmp_path):
    store = LocalObjectStore(base_dir=str(tmp_path), bucket="wardrobe", signing_secret=SIGNING_SECRET)
    store.ensure_directories()
    return store


@pytest.fixture
def mock_user():
    return User(
        user_id="user-1",
        email="ada@example.com",
        full_name="Ada Lovelace",
        created_at="2024-01-01T00:00:00Z"
    )


@pytest.fixture
def test_image():
    return make_image()


@pytest.fixture
def identity_collections():
    return {"users": MemoryCollection(), "sessions": MemoryCollection(), "password_resets": MemoryCollection()}


@pytest.fixture
def identity_provider(identity_collections):
    """MongoIdentityProvider over in-memory collections; sent OTP codes land in `.sent`."""
    sent = []
    provider = MongoIdentityProvider(otp_sender=lambda email, code: sent.append((email, code)))
    provider.sent = sent

    with patch("wardrobe_service.core.auth.mongo.get_collection", side_effect=identity_collections.get):
        yield provider


@pytest.fixture
def client(llm_client, record_store, object_store, mock_user):
    """API client with stores, LLM and current user overridden."""
    from wardrobe_service.app.main import app
    from wardrobe_service.core.auth import get_current_user
    from wardrobe_service.core.storage import get_object_store
    from wardrobe_service.db.records import get_record_store
    from wardrobe_service.llm.llm_adapter import get_llm_client

    app.dependency_overrides[get_llm_client] = lambda: llm_client
    app.dependency_overrides[get_record_store] = lambda: record_store
    app.dependency_overrides[get_object_store] = lambda: object_store
    app.dependency_overrides[get_current_user] = lambda: mock_user

    yield TestClient(app)

    app.dependency_overrides.clear()
