"""
Integration tests for artwork uploads.
"""
from unittest.mock import patch

from conftest import register_customer, submit_quote


def upload(client, user, name="logo final.png", content=b"\x89PNG artwork", **form):
    return client.post(
        "/api/v1/uploads",
        files={"file": (name, content, "image/png")},
        data=form,
        headers=user["headers"],
    )


class TestUploads:

    def test_store_upload(self, client, customer, uploads_dir):
        response = upload(client, customer)
        assert response.status_code == 201
        data = response.json()

        assert data["file_name"] == "logo final.png"
        assert data["file_type"] == "image/png"
        assert data["file_size_bytes"] == len(b"\x89PNG artwork")
        assert data["file_url"].startswith("/storage/")
        assert data["file_url"].endswith("-logo_final.png")

        stored = uploads_dir / data["file_url"].rsplit("/", 1)[1]
        assert stored.read_bytes() == b"\x89PNG artwork"

    def test_path_components_stripped(self, client, customer, uploads_dir):
        data = upload(client, customer, name="../../etc/passwd").json()
        assert data["file_url"].endswith("-passwd")
        assert [p.name for p in uploads_dir.iterdir()] == [data["file_url"].rsplit("/", 1)[1]]

    def test_empty_file_rejected(self, client, customer, uploads_dir):
        response = upload(client, customer, content=b"")
        assert response.status_code == 400
        assert response.json()["detail"] == "File is empty"
        assert list(uploads_dir.iterdir()) == []

    def test_missing_file_rejected(self, client, customer):
        response = client.post("/api/v1/uploads", data={"quote_id": "x"}, headers=customer["headers"])
        assert response.status_code == 400

    def test_oversized_file_rejected(self, client, customer, uploads_dir):
        with patch("storefront.services.upload_service.settings.MAX_UPLOAD_BYTES", 4):
            response = upload(client, customer, content=b"too many bytes")
        assert response.status_code == 413
        assert list(uploads_dir.iterdir()) == []

    def test_requires_login(self, client):
        response = client.post("/api/v1/uploads", files={"file": ("a.png", b"data", "image/png")})
        assert response.status_code == 401

    def test_attach_to_own_quote(self, client, catalog, customer):
        quote_id = submit_quote(client, customer, catalog)["quote"]["id"]
        data = upload(client, customer, quote_id=quote_id).json()
        assert data["quote_id"] == quote_id

        detail = client.get(f"/api/v1/quotes/{quote_id}", headers=customer["headers"]).json()
        assert [u["id"] for u in detail["uploads"]] == [data["id"]]

    def test_cannot_attach_to_foreign_quote(self, client, catalog, customer):
        quote_id = submit_quote(client, customer, catalog)["quote"]["id"]
        other = register_customer(client, email="ciara@example.com", name="Ciara")
        assert upload(client, other, quote_id=quote_id).status_code == 403

    def test_quote_creation_attaches_own_uploads(self, client, catalog, customer):
        upload_id = upload(client, customer).json()["id"]
        quote_id = submit_quote(client, customer, catalog, file_ids=[upload_id])["quote"]["id"]

        assert client.get(f"/api/v1/uploads/{upload_id}", headers=customer["headers"]).json()["quote_id"] == quote_id


class TestUploadAccess:

    def test_get_and_delete(self, client, customer, uploads_dir):
        data = upload(client, customer).json()

        assert client.get(f"/api/v1/uploads/{data['id']}", headers=customer["headers"]).status_code == 200
        assert client.delete(f"/api/v1/uploads/{data['id']}", headers=customer["headers"]).status_code == 204
        assert list(uploads_dir.iterdir()) == []
        assert client.get(f"/api/v1/uploads/{data['id']}", headers=customer["headers"]).status_code == 404

    def test_other_customer_forbidden(self, client, customer):
        upload_id = upload(client, customer).json()["id"]
        other = register_customer(client, email="ciara@example.com", name="Ciara")

        assert client.get(f"/api/v1/uploads/{upload_id}", headers=other["headers"]).status_code == 403
        assert client.delete(f"/api/v1/uploads/{upload_id}", headers=other["headers"]).status_code == 403

    def test_staff_can_view(self, client, customer, staff):
        upload_id = upload(client, customer).json()["id"]
        assert client.get(f"/api/v1/uploads/{upload_id}", headers=staff["headers"]).status_code == 200
