"""Tests for image payload handling and storage."""

from pathlib import Path

import pytest

from gradedesk.services.images import (
    InvalidImageError,
    LocalImageStore,
    split_data_uri,
    upload_image,
)


class TestSplitDataUri:
    def test_data_uri(self) -> None:
        payload = split_data_uri("data:image/webp;base64,AAAA")

        assert payload.media_type == "image/webp"
        assert payload.data == "AAAA"

    def test_bare_base64_assumed_jpeg(self) -> None:
        payload = split_data_uri("AAAA")

        assert payload.media_type == "image/jpeg"
        assert payload.data == "AAAA"

    def test_invalid_base64(self) -> None:
        with pytest.raises(InvalidImageError):
            split_data_uri("data:image/png;base64,not base64!").to_bytes()


class TestUpload:
    def test_data_uri_written_and_url_returned(self, tmp_path: Path, png_image: str) -> None:
        store = LocalImageStore(tmp_path, "https://cdn.example.com/cards/")

        url = upload_image(store, png_image)

        assert url.startswith("https://cdn.example.com/cards/")
        assert url.endswith(".png")
        stored = list(tmp_path.iterdir())
        assert len(stored) == 1
        assert stored[0].read_bytes().startswith(b"\x89PNG")

    def test_existing_url_passed_through(self, tmp_path: Path) -> None:
        store = LocalImageStore(tmp_path, "/media")

        assert upload_image(store, "/media/abc.png") == "/media/abc.png"
        assert list(tmp_path.iterdir()) == []


class TestDelete:
    def test_removes_stored_image(self, tmp_path: Path, png_image: str) -> None:
        store = LocalImageStore(tmp_path, "/media")
        url = upload_image(store, png_image)

        store.delete(url)

        assert list(tmp_path.iterdir()) == []

    def test_ignores_foreign_and_traversal_urls(self, tmp_path: Path) -> None:
        store = LocalImageStore(tmp_path / "media", "/media")
        outside = tmp_path / "keep.png"
        outside.write_bytes(b"x")

        store.delete("https://elsewhere.example.com/keep.png")
        store.delete("/media/../keep.png")
        store.delete("/media/missing.png")

        assert outside.exists()
