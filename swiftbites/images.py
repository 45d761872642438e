"""Menu images in S3: upload, key extraction and not-found-tolerant deletion."""

import logging
import time

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from . import config

logger = logging.getLogger(__name__)

MISSING_OBJECT_CODES = {"NoSuchKey", "404", "NotFound"}


class ImageStore:
    def __init__(self, bucket=None, region=None, client=None):
        self.bucket = bucket or config.S3_BUCKET_NAME
        self.region = region or config.AWS_REGION
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client("s3", region_name=self.region)
        return self._client

    @property
    def base_url(self):
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/"

    def object_key(self, filename):
        return f"menu-items/{int(time.time() * 1000)}-{filename}"

    def upload(self, fileobj, filename, content_type=None):
        """Store an uploaded image and return its public URL."""
        key = self.object_key(filename)
        extra = {"ACL": "public-read"}
        if content_type:
            extra["ContentType"] = content_type
        self.client.upload_fileobj(fileobj, self.bucket, key, ExtraArgs=extra)
        logger.info("Uploaded menu image %s", key)
        return self.base_url + key

    def extract_key(self, image_url):
        if not image_url:
            return None
        if image_url.startswith(self.base_url):
            return image_url[len(self.base_url):]
        if image_url.startswith("images/") or image_url.startswith("menu-items/"):
            return image_url
        logger.warning("Unrecognized image URL format: %s", image_url)
        return None

    def delete(self, image_url):
        """Remove the object behind ``image_url``.

        Never raises. A missing object counts as deleted. Returns True when
        nothing is left behind, False when the delete failed.
        """
        key = self.extract_key(image_url)
        if not key:
            return True
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in MISSING_OBJECT_CODES:
                logger.warning("S3 object not found for key %s, nothing to delete", key)
                return True
            logger.error("Error deleting S3 object %s: %s", key, e)
            return False
        except BotoCoreError as e:
            logger.error("Error deleting S3 object %s: %s", key, e)
            return False
        logger.info("Deleted S3 object %s", key)
        return True
