import io
import os
import zipfile

from PIL import Image


def _png(color=(0, 128, 255)):
    buf = io.BytesIO()
    Image.new("RGB", (8, 8), color).save(buf, format="PNG")
    return buf.getvalue()


def _zip(entries):
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    buf.seek(0)
    return buf


def test_upload_single_image(client, test_settings):
    r = client.post("/api/uploads", files={"file": ("Front View.PNG", io.BytesIO(_png()), "image/png")})
    assert r.status_code == 200, r.text
    body = r.json()
    assert len(body["uploaded"]) == 1
    ref = body["uploaded"][0]
    assert ref.startswith("/uploads/") and ref.endswith(".png")
    assert body["url"] == f"http://testserver{ref}"
    assert os.path.exists(os.path.join(test_settings.UPLOADS_DIR, os.path.basename(ref)))

    # stored files are served under the upload prefix
    served = client.get(ref)
    assert served.status_code == 200
    assert served.content == _png()


def test_upload_zip_of_images(client):
    archive = _zip({"a.jpg": _png(), "nested/b.png": _png((1, 2, 3)), "notes.txt": b"x", "dir/": b""})
    r = client.post("/api/uploads", files={"images_zip": ("pics.zip", archive, "application/zip")})
    assert r.status_code == 200, r.text
    assert len(r.json()["uploaded"]) == 2


def test_upload_rejects_non_image(client):
    r = client.post("/api/uploads", files={"file": ("report.pdf", io.BytesIO(b"%PDF"), "application/pdf")})
    assert r.status_code == 400
    assert r.json() == {"error": "Only image files are allowed"}


def test_upload_rejects_oversized_file(client, test_settings):
    big = b"0" * (test_settings.MAX_UPLOAD_BYTES + 1)
    r = client.post("/api/uploads", files={"file": ("big.jpg", io.BytesIO(big), "image/jpeg")})
    assert r.status_code == 413


def test_upload_without_file(client):
    r = client.post("/api/uploads", data={"x": "1"})
    assert r.status_code == 400
    assert r.json() == {"error": "No file"}


def test_list_uploads_requires_principal(client, user_headers):
    client.post("/api/uploads", files={"file": ("a.jpg", io.BytesIO(_png()), "image/jpeg")})

    assert client.get("/api/uploads").status_code == 401

    r = client.get("/api/uploads", headers=user_headers)
    assert r.status_code == 200
    listed = r.json()
    assert len(listed) == 1
    assert listed[0].startswith("/uploads/")


def test_testimonial_image_for_signed_in_user(client, user_headers, test_settings):
    r = client.post(
        "/api/upload-testimonial-image",
        files={"image": ("face.jpg", io.BytesIO(_png()), "image/jpeg")},
        headers=user_headers,
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["message"] == "Uploaded successfully"
    assert body["path"].startswith("testimonials/user-uid/testimonial-")
    assert body["path"].endswith(".jpg")
    assert body["url"] == f"http://testserver/uploads/{body['path']}"
    assert os.path.exists(os.path.join(test_settings.UPLOADS_DIR, *body["path"].split("/")))


def test_testimonial_image_anonymous_goes_to_general(client):
    r = client.post("/api/upload-testimonial-image", files={"image": ("face.png", io.BytesIO(_png()), "image/png")})
    assert r.status_code == 200
    assert r.json()["path"].startswith("testimonials/general/")


def test_testimonial_image_requires_image_field(client):
    r = client.post("/api/upload-testimonial-image", files={"file": ("face.png", io.BytesIO(_png()), "image/png")})
    assert r.status_code == 400
    assert r.json() == {"error": "No file uploaded (field name: image)"}


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


class TestImportImages:
    """Test bulk image intake for project imports"""

    def test_zip_images_are_saved(self, client, test_settings):
        archive = _zip({"house1.jpg": _png(), "plans/house2.PNG": _png((9, 9, 9)), "readme.txt": b"x"})
        r = client.post("/api/import-images", files={"images_zip": ("pics.zip", archive, "application/zip")})
        assert r.status_code == 200, r.text
        body = r.json()
        assert body["message"] == "Saved 2 image(s)"
        assert len(body["uploaded"]) == 2
        assert "url" not in body
        for ref in body["uploaded"]:
            assert ref.startswith("/uploads/")
            assert os.path.exists(os.path.join(test_settings.UPLOADS_DIR, os.path.basename(ref)))

    def test_single_image(self, client):
        r = client.post("/api/import-images", files={"file": ("cover.webp", io.BytesIO(_png()), "image/webp")})
        assert r.status_code == 200, r.text
        assert r.json()["message"] == "Saved 1 image(s)"
        assert r.json()["uploaded"][0].endswith(".webp")

    def test_zip_without_images_is_rejected(self, client):
        archive = _zip({"notes.txt": b"x"})
        r = client.post("/api/import-images", files={"images_zip": ("docs.zip", archive, "application/zip")})
        assert r.status_code == 400
        assert r.json() == {"error": "No images found in upload (supported: jpg, jpeg, png, webp, gif, bmp, svg)"}

    def test_empty_request_is_rejected(self, client):
        r = client.post("/api/import-images", data={"x": "1"})
        assert r.status_code == 400
        assert r.json()["error"].startswith("No images found in upload")
