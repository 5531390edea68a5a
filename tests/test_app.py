import io

import pytest

from app import create_app
from text_compression import compress_text


@pytest.fixture
def client(tmp_path):
    app = create_app(data_dir=str(tmp_path))
    app.config["TESTING"] = True
    return app.test_client()


def upload(client, url, content, filename):
    return client.post(
        url,
        data={"file": (io.BytesIO(content), filename)},
        content_type="multipart/form-data",
    )


def test_home(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "txt" in response.get_json()["allowed_extensions"]


def test_compress_then_decompress(client):
    original = ("Huffman coding assigns short codes to frequent symbols.\n" * 40).encode("utf-8")

    response = upload(client, "/compress_file", original, "notes.txt")
    assert response.status_code == 200
    body = response.get_json()
    assert body["success"] is True
    assert body["compressed_filename"] == "notes.txt.huff"
    assert body["original_size"] == len(original)
    assert body["saved"] == body["original_size"] - body["compressed_size"]
    assert body["download_url"] == "/download/compressed/notes.txt.huff"

    compressed = client.get(body["download_url"]).data
    assert compressed.startswith(b"HUFF")
    assert len(compressed) == body["compressed_size"]

    response = upload(client, "/decompress_file", compressed, "notes.txt.huff")
    assert response.status_code == 200
    body = response.get_json()
    assert body["decompressed_file"] == "notes.txt"

    assert client.get(body["download_url"]).data == original


def test_compress_pdf_as_bytes(client):
    original = b"%PDF-1.4\n\x00\xff\xfe" * 30
    body = upload(client, "/compress_file", original, "report.pdf").get_json()
    compressed = client.get(body["download_url"]).data

    body = upload(client, "/decompress_file", compressed, "report.pdf.huff").get_json()
    assert client.get(body["download_url"]).data == original


def test_compress_rejects_bad_uploads(client):
    assert client.post("/compress_file", data={}).status_code == 400
    assert upload(client, "/compress_file", b"MZ", "tool.exe").status_code == 400
    assert upload(client, "/compress_file", b"\x80\x81", "notes.txt").status_code == 400


def test_decompress_rejects_bad_uploads(client):
    assert upload(client, "/decompress_file", b"abc", "notes.txt").status_code == 400

    response = upload(client, "/decompress_file", b"not a container", "notes.txt.huff")
    assert response.status_code == 400
    assert response.get_json()["success"] is False


def test_decompress_truncated_payload(client):
    compressed = compress_text("truncated payloads must not decode silently")
    response = upload(client, "/decompress_file", compressed[:-1], "short.txt.huff")
    assert response.status_code == 400
    assert "bits" in response.get_json()["error"]


def test_decompress_rejects_surrogate_symbols(client):
    compressed = (
        b"HUFF\x01\x00"
        + (1).to_bytes(4, "big")
        + (0xDC00).to_bytes(4, "big") + (2).to_bytes(4, "big")
        + (2).to_bytes(8, "big")
        + b"\x00"
    )
    response = upload(client, "/decompress_file", compressed, "odd.txt.huff")
    assert response.status_code == 400
    assert "code point" in response.get_json()["error"]


def test_create_app_leaves_the_disk_alone(tmp_path):
    data_dir = tmp_path / "store"
    client = create_app(data_dir=str(data_dir)).test_client()
    assert not data_dir.exists()

    upload(client, "/compress_file", b"abc", "a.txt")
    assert (data_dir / "uploads" / "compressed" / "a.txt.huff").exists()


def test_download_missing(client):
    assert client.get("/download/compressed/missing.huff").status_code == 404
    assert client.get("/download/original/anything.txt").status_code == 404
