import pytest

from storage import s3


def test_listing_object_key_layout(settings):
    settings.S3_UPLOADS_PREFIX = "/uploads/listings/"

    key = s3.listing_object_key(listing_id=7, host_id=3, filename="My Drill.PNG")

    parts = key.split("/")
    assert parts[:4] == ["uploads", "listings", "7", "3"]
    assert parts[4].endswith("-my-drill.png")


def test_avatar_object_key_falls_back_to_upload_name(settings):
    settings.S3_AVATAR_PREFIX = ""

    key = s3.avatar_object_key(5, "???")

    assert key.startswith("5/")
    assert key.endswith("-upload")


def test_public_url_for_aws(settings):
    settings.AWS_S3_ENDPOINT_URL = None
    settings.AWS_S3_REGION_NAME = "us-west-2"

    assert s3.public_url("a/b.jpg") == "https://lendit-test.s3.us-west-2.amazonaws.com/a/b.jpg"


def test_public_url_for_local_endpoint(settings):
    settings.AWS_S3_ENDPOINT_URL = "http://localhost:9000"

    assert s3.public_url("a/b.jpg") == "http://localhost:9000/lendit-test/a/b.jpg"


@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://lendit-test.s3.us-east-1.amazonaws.com/a/b%20c.jpg", "a/b c.jpg"),
        ("http://localhost:9000/lendit-test/a/b.jpg", "a/b.jpg"),
        ("https://other-bucket.s3.us-east-1.amazonaws.com/a/b.jpg", None),
        ("https://cdn.example.com/a/b.jpg", None),
        ("", None),
    ],
)
def test_key_from_url(url, expected):
    assert s3.key_from_url(url) == expected


def test_media_base_url_fronts_the_bucket(settings):
    settings.MEDIA_BASE_URL = "https://cdn.example.com/"

    url = s3.public_url("uploads/listings/1/2/x.jpg")

    assert url == "https://cdn.example.com/uploads/listings/1/2/x.jpg"
    assert s3.key_from_url(url) == "uploads/listings/1/2/x.jpg"
    assert s3.key_from_url("https://elsewhere.example.com/x.jpg") is None


def test_report_object_prefix():
    assert s3.report_object_prefix(12, "listing", 40) == "reports/report_12_listing_40/"


def test_presign_put_enforces_size_limit(settings):
    settings.S3_MAX_UPLOAD_BYTES = 10

    with pytest.raises(ValueError):
        s3.presign_put("a.jpg", content_type="image/jpeg", size_hint=11)


def test_presign_put(s3_bucket):
    presigned = s3.presign_put("uploads/a.jpg", content_type="image/jpeg", size_hint=5)

    assert "uploads/a.jpg" in presigned["upload_url"]
    assert presigned["key"] == "uploads/a.jpg"
    assert presigned["headers"] == {"Content-Type": "image/jpeg"}


def test_put_copy_and_delete_roundtrip(s3_bucket, settings):
    bucket = settings.AWS_STORAGE_BUCKET_NAME

    s3.put_object("src/a.txt", b"hello", content_type="text/plain")
    s3.copy_object("src/a.txt", "dst/a.txt")
    s3.delete_object("src/a.txt")

    keys = [row["Key"] for row in s3_bucket.list_objects_v2(Bucket=bucket)["Contents"]]
    assert keys == ["dst/a.txt"]


def test_guess_content_type():
    assert s3.guess_content_type("photo.jpeg") == "image/jpeg"
    assert s3.guess_content_type("mystery") == "application/octet-stream"
