import io
import json
import os
from pathlib import Path

import boto3
import pytest
from moto import mock_aws
from PIL import Image
from fastapi.testclient import TestClient

# Dummy AWS credentials for moto
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
os.environ["AWS_SECURITY_TOKEN"] = "testing"
os.environ["AWS_SESSION_TOKEN"] = "testing"
os.environ["AWS_REGION"] = "us-east-1"
os.environ["S3_BUCKET"] = "image-watch-bucket"
# Clear the AWS_ENDPOINT_URL so moto mocks are used instead of localstack
os.environ.pop("AWS_ENDPOINT_URL", None)
os.environ.pop("CONFIG_FILE", None)

from image_watcher.main import app
from image_watcher.settings import Settings
from image_watcher.storage.s3 import S3Service

BUCKET = "image-watch-bucket"


def make_image_bytes(fmt="PNG", color="red"):
    """Generate a simple valid image in-memory."""
    img = Image.new("RGB", (10, 10), color=color)
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def write_image(path: Path, size: int = 0, fmt: str = "JPEG") -> Path:
    """Writes a real image, padded with trailing bytes up to `size`."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = make_image_bytes(fmt)
    if size > len(data):
        data += b"\0" * (size - len(data))
    path.write_bytes(data)
    return path


@pytest.fixture(scope="function")
def aws_credentials():
    """Mocked AWS Credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"


@pytest.fixture(scope="function")
def s3_service(aws_credentials):
    with mock_aws():
        settings = Settings(s3_bucket=BUCKET, aws_region="us-east-1")
        yield S3Service(settings)


@pytest.fixture(scope="function")
def incoming_tree(tmp_path):
    """/data/site7/incoming/photo.jpg (50 kB) next to a non-matching outgoing directory."""
    data = tmp_path / "data"
    write_image(data / "site7" / "incoming" / "photo.jpg", size=50_000)
    write_image(data / "site7" / "outgoing" / "other.jpg", size=50_000)
    return data


def configure_watcher(monkeypatch, tmp_path, incoming_tree, upload_existing):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("WATCH_DIR", json.dumps([{"dir": f"{incoming_tree}/*/incoming", "tag": "cam1"}]))
    monkeypatch.setenv("USE_WILDCARD", "true")
    monkeypatch.setenv("UPLOAD_EXISTING", "true" if upload_existing else "false")
    monkeypatch.setenv("MIN_IMAGE_SIZE", "1000")
    monkeypatch.setenv("MAX_IMAGE_SIZE", "5000000")
    monkeypatch.setenv("COMMON_TAGS", json.dumps({"season": "fall"}))


@pytest.fixture(scope="function")
def test_client(aws_credentials, incoming_tree, tmp_path, monkeypatch):
    configure_watcher(monkeypatch, tmp_path, incoming_tree, upload_existing=True)
    with mock_aws():
        with TestClient(app) as client:
            yield client


@pytest.fixture(scope="function")
def watch_only_client(aws_credentials, incoming_tree, tmp_path, monkeypatch):
    configure_watcher(monkeypatch, tmp_path, incoming_tree, upload_existing=False)
    with mock_aws():
        with TestClient(app) as client:
            yield client


@pytest.fixture(scope="function")
def s3_client():
    """Plain boto3 client; only meaningful inside an active moto context."""
    return boto3.client("s3", region_name="us-east-1")
