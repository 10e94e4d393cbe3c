import boto3
from typing import Dict, Optional
from botocore.exceptions import ClientError
from image_watcher.settings import Settings
import logging

log = logging.getLogger(__name__)

# -------------------------
# S3 Service
# -------------------------
class S3Service:
    def __init__(self, settings: Settings):
        self.bucket = settings.s3_bucket
        self.region = settings.aws_region
        session = boto3.session.Session(region_name=settings.aws_region)
        kwargs = {
            "aws_access_key_id": settings.aws_access_key_id,
            "aws_secret_access_key": settings.aws_secret_access_key,
        }
        if settings.aws_endpoint_url:
            kwargs["endpoint_url"] = settings.aws_endpoint_url

        self.client = session.client("s3", **kwargs)
        log.info("Initialized S3 client")

        # Ensure bucket exists at initialization
        self.ensure_bucket()

    def ensure_bucket(self):
        try:
            self.client.head_bucket(Bucket=self.bucket)
            log.debug("Bucket %s already exists", self.bucket)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code")
            if error_code in ("404", "NoSuchBucket"):
                kwargs = {"Bucket": self.bucket}
                # us-east-1 rejects an explicit location constraint
                if self.region != "us-east-1":
                    kwargs["CreateBucketConfiguration"] = {"LocationConstraint": self.region}
                self.client.create_bucket(**kwargs)
                log.info("Created bucket %s", self.bucket)
            else:
                log.error("Failed to check/create bucket: %s", e)
                raise

    def put_object(
        self,
        key: str,
        body: bytes,
        content_type: str,
        metadata: Dict[str, str],
        bucket: Optional[str] = None,
    ):
        bucket = bucket or self.bucket
        self.client.put_object(
            Bucket=bucket,
            Key=key,
            Body=body,
            ContentType=content_type,
            Metadata=metadata,
        )
        log.debug("Uploaded %s to s3://%s/%s", key, bucket, key)

    def close(self):
        log.info("Closed S3 client")
