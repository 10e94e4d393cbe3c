import logging
import os
from pathlib import Path
from typing import Dict, Mapping, Optional
import uuid
from botocore.exceptions import BotoCoreError, ClientError

from image_watcher.storage.s3 import S3Service
from image_watcher.upload_service.classifier import content_type_for, file_extension, is_image, is_valid_size
from image_watcher.upload_service.identity import IdentityCache
from image_watcher.upload_service.models import DirectoryUploadSummary, UploadResult, UploadStatus
from image_watcher.exceptions import FileReadException, S3UploadException, UploadException

log = logging.getLogger(__name__)

DIR_TAG_KEY = "dir-tag"

def compose_metadata(dir_tag: str, common_tags: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Directory tag first, then common tags on top; a common `dir-tag` wins."""
    metadata = {DIR_TAG_KEY: dir_tag}
    for key, value in (common_tags or {}).items():
        metadata[key] = value
    return metadata

def object_key(identity: uuid.UUID, extension: str) -> str:
    return f"{identity}.{extension}"

def creation_time(stat_result: os.stat_result) -> float:
    """Birth time where the platform reports it, inode change time otherwise."""
    birthtime = getattr(stat_result, "st_birthtime", None)
    if birthtime is not None:
        return birthtime
    return stat_result.st_ctime


class UploadPipeline:
    """Decides whether a file is uploaded and under which key, then stores it."""

    def __init__(
        self,
        s3: S3Service,
        identities: IdentityCache,
        min_image_size: int,
        max_image_size: int,
        common_tags: Optional[Mapping[str, str]] = None,
    ):
        self.s3 = s3
        self.identities = identities
        self.min_image_size = min_image_size
        self.max_image_size = max_image_size
        self.common_tags = dict(common_tags or {})

    def upload(
        self,
        path,
        dir_tag: str,
        common_tags: Optional[Mapping[str, str]] = None,
    ) -> UploadResult:
        """
        Uploads one file under its stable identity.

        Returns a skipped result when the size is outside the configured window.
        Raises FileReadException or S3UploadException; nothing is stored then.
        """
        path = os.fspath(path)
        common_tags = self.common_tags if common_tags is None else common_tags

        try:
            stat_result = os.stat(path)
        except OSError as e:
            raise FileReadException(path, str(e))

        size = stat_result.st_size
        if size < self.min_image_size or size > self.max_image_size:
            reason = f"size {size} is not within the allowed range ({self.min_image_size} - {self.max_image_size})"
            log.info("Skipping %s: %s", path, reason)
            return UploadResult(status=UploadStatus.SKIPPED, path=path, size=size, reason=reason)

        identity = self.identities.identity_for(path, creation_time(stat_result))
        extension = file_extension(path)
        key = object_key(identity, extension)
        content_type = content_type_for(extension)
        metadata = compose_metadata(dir_tag, common_tags)

        try:
            body = Path(path).read_bytes()
        except OSError as e:
            raise FileReadException(path, str(e))

        try:
            self.s3.put_object(key=key, body=body, content_type=content_type, metadata=metadata)
        except (BotoCoreError, ClientError) as e:
            log.error(f"S3 upload failed for {path}: {e}")
            raise S3UploadException(path, str(e))

        log.info("Uploaded %s to s3://%s/%s", path, self.s3.bucket, key)
        return UploadResult(
            status=UploadStatus.UPLOADED,
            path=path,
            key=key,
            content_type=content_type,
            metadata=metadata,
            size=size,
        )

    def upload_directory(
        self,
        dir_path,
        dir_tag: str,
        common_tags: Optional[Mapping[str, str]] = None,
    ) -> DirectoryUploadSummary:
        """
        Uploads every eligible image below a directory, continuing past failures.
        Directory symlinks are not followed, so cyclic links cannot loop the walk.
        """
        dir_path = os.fspath(dir_path)
        summary = DirectoryUploadSummary(directory=dir_path, tag=dir_tag)
        log.info("Uploading images from directory: %s", dir_path)

        def on_walk_error(error: OSError):
            log.error(f"Failed to read directory {error.filename}: {error}")

        for root, _dirs, files in os.walk(dir_path, onerror=on_walk_error, followlinks=False):
            for name in sorted(files):
                file_path = os.path.join(root, name)
                if not os.path.isfile(file_path):
                    continue
                if not is_image(file_path):
                    log.info("Skipping %s: not a recognized image format", file_path)
                    summary.skipped += 1
                    continue
                if not is_valid_size(file_path, self.min_image_size, self.max_image_size):
                    log.info(
                        "Skipping %s: size outside the allowed range (%d - %d)",
                        file_path, self.min_image_size, self.max_image_size,
                    )
                    summary.skipped += 1
                    continue
                log.info("Found image file: %s", file_path)
                try:
                    result = self.upload(file_path, dir_tag, common_tags)
                except UploadException as e:
                    log.error(f"Failed to upload file {file_path}: {e.detail}")
                    summary.failed += 1
                    continue
                if result.uploaded:
                    summary.uploaded += 1
                else:
                    summary.skipped += 1
        return summary
