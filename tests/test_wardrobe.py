"""
Wardrobe catalog tests: upload validation, listing, deletion and photo URLs.
"""
import io

import pytest
from starlette.datastructures import UploadFile

from conftest import make_image
from wardrobe_service.core.errors import InvalidInput
from wardrobe_service.core.validation import MAX_FILE_SIZE_BYTES, validate_item_metadata, file_extension
from wardrobe_service.db import wardrobe

FORM = {"name": "Linen Shirt", "category": "Top", "dress_code": "Casual", "color": "white"}


def upload(client, data=None, content=None, content_type="image/jpeg", filename="shirt.jpg"):
    return client.post(
        "/ai/wardrobe/items",
        files={"image": (filename, io.BytesIO(content if content is not None else make_image()), content_type)},
        data=data or FORM,
    )


# ==================== METADATA VALIDATION ====================

class TestItemMetadata:
    """Item form validation."""

    def test_blank_optional_fields_become_none(self):
        cleaned = validate_item_metadata({"name": " Tee ", "category": "Top", "dress_code": "Casual", "color": "  "})
        assert cleaned["name"] == "Tee"
        assert cleaned["color"] is None
        assert cleaned["season"] is None

    def test_reports_every_failing_field(self):
        with pytest.raises(InvalidInput) as exc:
            validate_item_metadata({"name": "", "category": "c" * 51, "dress_code": "Casual", "notes": "n" * 1001})
        message = exc.value.message
        assert "Name is required" in message
        assert "Category must be less than 50 characters" in message
        assert "Notes must be less than 1000 characters" in message

    def test_extension_prefers_filename(self):
        assert file_extension("image/jpeg", "photo.JPEG") == "jpeg"
        assert file_extension("image/png", "photo.exe") == "png"
        assert file_extension("image/webp", None) == "webp"


# ==================== UPLOAD ROUTE ====================

class TestUpload:
    """POST /ai/wardrobe/items"""

    def test_upload_stores_private_photo(self, client, record_store, object_store):
        response = upload(client)

        assert response.status_code == 201
        item = response.json()
        assert item["user_id"] == "user-1"
        assert item["image_path"].startswith("user-1/")
        assert item["image_path"].endswith(".jpg")
        assert item["image_url"].startswith("/ai/storage/user-1/")
        assert "signature=" in item["image_url"]

        assert object_store.read(item["image_path"]) == make_image()
        assert record_store.select("wardrobe_items")[0]["id"] == item["id"]

    def test_rejects_unsupported_type_without_storing(self, client, record_store, object_store):
        response = upload(client, content=b"%PDF-1.4", content_type="application/pdf", filename="doc.pdf")

        assert response.status_code == 415
        assert response.json()["detail"] == "Please upload a valid image file (JPEG, PNG, or WebP)"
        assert record_store.select("wardrobe_items") == []
        assert list(object_store.bucket_dir.rglob("*.*")) == []

    def test_rejects_oversized_image(self, client, record_store):
        response = upload(client, content=b"x" * (5 * 1024 * 1024 + 1))

        assert response.status_code == 413
        assert "5MB" in response.json()["detail"]
        assert record_store.select("wardrobe_items") == []

    def test_upload_read_is_bounded(self, client, record_store, monkeypatch):
        original_read = UploadFile.read
        read_sizes = []
        read_lengths = []

        async def tracking_read(self, size=-1):
            data = await original_read(self, size)
            read_sizes.append(size)
            read_lengths.append(len(data))
            return data

        monkeypatch.setattr(UploadFile, "read", tracking_read)
        response = upload(client, content=b"x" * (3 * MAX_FILE_SIZE_BYTES))

        assert response.status_code == 413
        assert read_sizes == [MAX_FILE_SIZE_BYTES + 1]
        assert read_lengths == [MAX_FILE_SIZE_BYTES + 1]
        assert record_store.select("wardrobe_items") == []

    def test_rejects_undecodable_image(self, client):
        response = upload(client, content=b"not an image at all")
        assert response.status_code == 400
        assert "decode" in response.json()["detail"].lower()

    def test_rejects_missing_required_metadata(self, client):
        response = upload(client, data={"name": "  ", "category": "Top", "dress_code": "Casual"})
        assert response.status_code == 400
        assert "Name is required" in response.json()["detail"]

    def test_png_upload(self, client):
        response = upload(client, content=make_image("PNG"), content_type="image/png", filename="tee.png")
        assert response.status_code == 201
        assert response.json()["image_path"].endswith(".png")

    def test_failed_insert_removes_photo(self, record_store, object_store, monkeypatch):
        def broken_insert(table, row):
            raise RuntimeError("write failed")

        monkeypatch.setattr(record_store, "insert", broken_insert)

        with pytest.raises(RuntimeError):
            wardrobe.create_wardrobe_item(record_store, object_store, "user-1", FORM, make_image(), "image/jpeg")

        assert list(object_store.bucket_dir.rglob("*.jpg")) == []


# ==================== LISTING ====================

class TestListing:
    """GET /ai/wardrobe/items"""

    def seed(self, record_store):
        rows = [
            ("a", "user-1", "Casual", "2024-01-01T00:00:00+00:00"),
            ("b", "user-1", "Formal", "2024-01-03T00:00:00+00:00"),
            ("c", "user-1", "Casual", "2024-01-02T00:00:00+00:00"),
            ("d", "user-2", "Party", "2024-01-04T00:00:00+00:00"),
        ]
        for item_id, user_id, dress_code, created_at in rows:
            record_store.insert("wardrobe_items", {
                "id": item_id,
                "user_id": user_id,
                "name": f"Item {item_id}",
                "category": "Top",
                "dress_code": dress_code,
                "color": None,
                "image_path": None,
                "created_at": created_at,
            })

    def test_newest_first_and_scoped_to_user(self, client, record_store):
        self.seed(record_store)
        data = client.get("/ai/wardrobe/items").json()

        assert [item["id"] for item in data["items"]] == ["b", "c", "a"]
        assert data["count"] == 3
        assert data["items"][0]["image_url"] is None

    def test_dress_code_tabs(self, client, record_store):
        self.seed(record_store)
        data = client.get("/ai/wardrobe/items").json()
        assert data["dress_codes"] == ["All", "Formal", "Casual"]

    def test_filter_by_dress_code(self, client, record_store):
        self.seed(record_store)
        data = client.get("/ai/wardrobe/items", params={"dress_code": "Casual"}).json()

        assert [item["id"] for item in data["items"]] == ["c", "a"]
        assert data["dress_codes"] == ["All", "Formal", "Casual"]

    def test_all_tab_returns_everything(self, client, record_store):
        self.seed(record_store)
        data = client.get("/ai/wardrobe/items", params={"dress_code": "All"}).json()
        assert data["count"] == 3

    def test_item_summary_fields(self):
        item = {"id": "x", "name": "Tee", "category": "Top", "dress_code": "Casual", "color": None,
                "user_id": "u", "image_path": "u/1.jpg", "notes": "soft"}
        assert wardrobe.item_summary(item) == {
            "id": "x", "name": "Tee", "category": "Top", "dress_code": "Casual", "color": None,
        }


# ==================== DELETE & IMAGE URL ====================

class TestDeleteAndImageUrl:
    def test_delete_removes_record_and_photo(self, client, record_store, object_store):
        item = upload(client).json()

        response = client.delete(f"/ai/wardrobe/items/{item['id']}")

        assert response.status_code == 200
        assert record_store.select("wardrobe_items") == []
        assert not object_store.path_for(item["image_path"]).exists()

    def test_delete_unknown_item(self, client):
        assert client.delete("/ai/wardrobe/items/missing").status_code == 404

    def test_cannot_delete_other_users_item(self, client, record_store):
        record_store.insert("wardrobe_items", {"id": "theirs", "user_id": "user-2", "image_path": None})
        assert client.delete("/ai/wardrobe/items/theirs").status_code == 404
        assert len(record_store.select("wardrobe_items")) == 1

    def test_image_url_fetches_photo(self, client):
        item = upload(client).json()

        response = client.get(f"/ai/wardrobe/items/{item['id']}/image-url", params={"expires_in": 60})
        assert response.status_code == 200
        signed_url = response.json()["signed_url"]

        photo = client.get(signed_url)
        assert photo.status_code == 200
        assert photo.headers["content-type"] == "image/jpeg"
        assert photo.content == make_image()

    def test_image_url_unknown_item(self, client):
        assert client.get("/ai/wardrobe/items/missing/image-url").status_code == 404
