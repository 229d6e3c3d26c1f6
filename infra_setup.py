# infra_setup.py
"""
One-off provisioning of everything the storefront talks to: a DynamoDB
table per collection, the vendor notification queue, the ops alert topic
and the product image bucket.
"""
import json
import os

from botocore.exceptions import ClientError

from aws_config import (
    AWS_REGION,
    DEFAULT_QUEUE_NAME,
    DEFAULT_SNS_TOPIC_NAME,
    S3_IMAGE_BUCKET,
    TABLE_KEYS,
    dynamodb_resource,
    s3_client,
    sns_client,
    sqs_client,
)

OPS_ALERT_EMAIL = os.getenv("OPS_ALERT_EMAIL", "")
# must be at least the notification Lambda's timeout
QUEUE_VISIBILITY_TIMEOUT = os.getenv("SQS_VISIBILITY_TIMEOUT", "60")

ddb = dynamodb_resource()
sqs = sqs_client()
sns = sns_client()
s3 = s3_client()


# --- DynamoDB ---
def ensure_table(table_name, partition_key):
    try:
        ddb.Table(table_name).load()
        print(f"Table '{table_name}' already exists.")
        return
    except ClientError as e:
        if e.response["Error"]["Code"] != "ResourceNotFoundException":
            raise

    table = ddb.create_table(
        TableName=table_name,
        AttributeDefinitions=[{"AttributeName": partition_key, "AttributeType": "S"}],
        KeySchema=[{"AttributeName": partition_key, "KeyType": "HASH"}],
        BillingMode="PAY_PER_REQUEST"
    )
    table.wait_until_exists()
    print(f"Created table '{table_name}' keyed on '{partition_key}'.")


# --- Vendor notification queue ---
def ensure_notification_queue(queue_name):
    # create_queue is idempotent while the attributes match
    resp = sqs.create_queue(
        QueueName=queue_name,
        Attributes={
            "MessageRetentionPeriod": "86400",
            "VisibilityTimeout": QUEUE_VISIBILITY_TIMEOUT,
            "ReceiveMessageWaitTimeSeconds": "5",
        }
    )
    print(f"Notification queue '{queue_name}': {resp['QueueUrl']}")
    return resp["QueueUrl"]


# --- Ops alert topic ---
def ensure_alert_topic(topic_name, email=OPS_ALERT_EMAIL):
    arn = sns.create_topic(Name=topic_name)["TopicArn"]
    print(f"Alert topic '{topic_name}': {arn}")
    if email:
        sns.subscribe(TopicArn=arn, Protocol="email", Endpoint=email)
        print(f"Subscribed {email} to missed-notification alerts (confirm via email).")
    return arn


# --- Product image bucket ---
def ensure_image_bucket(bucket_name, region=AWS_REGION):
    owned = {b["Name"] for b in s3.list_buckets().get("Buckets", [])}
    if bucket_name in owned:
        print(f"Image bucket '{bucket_name}' already exists.")
    else:
        if region == "us-east-1":
            s3.create_bucket(Bucket=bucket_name)
        else:
            s3.create_bucket(
                Bucket=bucket_name,
                CreateBucketConfiguration={"LocationConstraint": region}
            )
        print(f"Created image bucket '{bucket_name}' in '{region}'.")

    # product images are linked straight from the storefront
    s3.put_public_access_block(
        Bucket=bucket_name,
        PublicAccessBlockConfiguration={
            "BlockPublicAcls": True,
            "IgnorePublicAcls": True,
            "BlockPublicPolicy": False,
            "RestrictPublicBuckets": False,
        }
    )
    s3.put_bucket_policy(Bucket=bucket_name, Policy=json.dumps({
        "Version": "2012-10-17",
        "Statement": [{
            "Sid": "PublicReadProductImages",
            "Effect": "Allow",
            "Principal": "*",
            "Action": "s3:GetObject",
            "Resource": f"arn:aws:s3:::{bucket_name}/products/*",
        }],
    }))
    s3.put_bucket_cors(Bucket=bucket_name, CORSConfiguration={
        "CORSRules": [{"AllowedMethods": ["GET"], "AllowedOrigins": ["*"], "MaxAgeSeconds": 3600}],
    })
    print(f"Opened 'products/' in '{bucket_name}' for public reads.")
    return bucket_name


if __name__ == "__main__":
    for table_name, key in TABLE_KEYS.items():
        ensure_table(table_name, key)

    queue_url = ensure_notification_queue(DEFAULT_QUEUE_NAME)
    topic_arn = ensure_alert_topic(DEFAULT_SNS_TOPIC_NAME)
    bucket = ensure_image_bucket(S3_IMAGE_BUCKET)

    print("\nInfrastructure setup completed successfully.")
    print(f"Notification Queue URL: {queue_url}")
    print(f"Alert Topic ARN: {topic_arn}")
    print(f"Image Bucket: {bucket}")
    print("Point the notification Lambda's SQS trigger at the queue above.")
