import re

from conftest import BUCKET


# ------------------------------
# startup
# ------------------------------

def test_read_root(test_client):
    resp = test_client.get("/")
    assert resp.status_code == 200
    assert resp.json() == "Image Watcher is running."


def test_existing_images_uploaded_at_startup(test_client, s3_client):
    objects = s3_client.list_objects_v2(Bucket=BUCKET).get("Contents", [])
    assert len(objects) == 1
    key = objects[0]["Key"]
    assert re.match(r"^[0-9a-f-]{36}\.jpg$", key)

    head = s3_client.head_object(Bucket=BUCKET, Key=key)
    assert head["ContentType"] == "image/jpeg"
    assert head["Metadata"] == {"dir-tag": "cam1", "season": "fall"}


# ------------------------------
# /watches
# ------------------------------

def test_list_watches(test_client, incoming_tree):
    resp = test_client.get("/watches")
    assert resp.status_code == 200
    body = resp.json()
    assert body["use_wildcard"] is True
    assert body["rules"] == [{"dir": f"{incoming_tree}/*/incoming", "tag": "cam1"}]
    assert body["watched_directories"] == [f"{incoming_tree}/site7/incoming"]


# ------------------------------
# /identities
# ------------------------------

def test_identity_of_uploaded_file(test_client, s3_client, incoming_tree):
    path = f"{incoming_tree}/site7/incoming/photo.jpg"
    resp = test_client.get("/identities", params={"path": path})
    assert resp.status_code == 200
    body = resp.json()
    assert body["s3_key"] == f"{body['identity']}.jpg"

    keys = [obj["Key"] for obj in s3_client.list_objects_v2(Bucket=BUCKET)["Contents"]]
    assert body["s3_key"] in keys


def test_identity_of_unknown_file(test_client, incoming_tree):
    resp = test_client.get("/identities", params={"path": f"{incoming_tree}/site7/outgoing/other.jpg"})
    assert resp.status_code == 404


def test_identity_requires_path(test_client):
    resp = test_client.get("/identities")
    assert resp.status_code == 422


# ------------------------------
# /scan
# ------------------------------

def test_request_scan(test_client):
    resp = test_client.post("/scan")
    assert resp.status_code == 202
    assert resp.json()["status"] == "queued"


def test_existing_images_left_alone_when_disabled(watch_only_client, s3_client, incoming_tree):
    assert s3_client.list_objects_v2(Bucket=BUCKET).get("KeyCount") == 0

    resp = watch_only_client.get("/watches")
    assert resp.json()["upload_existing"] is False
    assert resp.json()["watched_directories"] == [f"{incoming_tree}/site7/incoming"]
