from aws_config import S3_PUBLIC_BASE_URL

from .base_client import AWSBaseClient


class S3Client(AWSBaseClient):
    def __init__(self):
        super().__init__("s3")

    def upload_fileobj(self, bucket, key, fileobj, content_type=None):
        extra = {"ContentType": content_type} if content_type else {}
        self.client.upload_fileobj(fileobj, bucket, key, ExtraArgs=extra)
        return self.public_url(bucket, key)

    def put_bytes(self, bucket, key, body, content_type=None):
        kwargs = {"Bucket": bucket, "Key": key, "Body": body}
        if content_type:
            kwargs["ContentType"] = content_type
        self.client.put_object(**kwargs)
        return self.public_url(bucket, key)

    def delete(self, bucket, key):
        return self.client.delete_object(Bucket=bucket, Key=key)

    def public_url(self, bucket, key):
        if S3_PUBLIC_BASE_URL:
            return f"{S3_PUBLIC_BASE_URL.rstrip('/')}/{key}"
        return f"https://{bucket}.s3.{self.region_name}.amazonaws.com/{key}"

