import base64

from plantcare.encodings import (
    JSON_KEYS,
    MULTIPART_FIELDS,
    JsonBase64,
    MultipartField,
    candidate_encodings,
    strip_data_url,
    to_data_url,
)


def test_candidate_order_multipart_first():
    encodings = candidate_encodings()
    assert len(encodings) == len(MULTIPART_FIELDS) + 4 * len(JSON_KEYS)
    assert [e.name for e in encodings[:6]] == ["file", "image", "img", "image_file", "upload", "data"]
    assert all(isinstance(e, JsonBase64) for e in encodings[6:])


def test_json_order_per_key():
    labels = [e.label for e in candidate_encodings()[6:10]]
    assert labels == [
        "json:image:prefixed",
        "json:image:raw",
        "json:data.image:prefixed",
        "json:data.image:raw",
    ]
    keys = [e.key for e in candidate_encodings()[6::4]]
    assert keys == ["image", "file", "data", "image_base64"]


def test_data_url_and_strip(leaf):
    url = to_data_url(leaf)
    assert url.startswith("data:image/jpeg;base64,")
    raw = strip_data_url(url)
    assert base64.b64decode(raw) == leaf.content
    assert strip_data_url("abc") == "abc"


def test_json_bodies(leaf):
    raw = base64.b64encode(leaf.content).decode()
    assert JsonBase64("file", with_prefix=False).body(leaf) == {"file": raw}
    assert JsonBase64("data", with_prefix=False, nested=True).body(leaf) == {"data": {"data": raw}}
    prefixed = JsonBase64("image", with_prefix=True).body(leaf)["image"]
    assert prefixed == f"data:image/jpeg;base64,{raw}"


def test_json_build_sets_headers(leaf):
    kwargs = JsonBase64("image", True).build(leaf)
    assert kwargs["headers"]["Content-Type"] == "application/json"
    assert "json" in kwargs


def test_multipart_build(leaf):
    kwargs = MultipartField("upload").build(leaf)
    assert kwargs["files"] == [("upload", ("leaf.jpg", leaf.content, "image/jpeg"))]
    assert MultipartField("upload").label == "multipart:upload"
