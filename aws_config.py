# aws_config.py
import os

import boto3
from botocore.config import Config

# -----------------------------
# AWS region & boto3 config
# -----------------------------
AWS_REGION = os.getenv("AWS_REGION", "ap-south-1")

boto3_config = Config(
    region_name=AWS_REGION,
    retries={"max_attempts": int(os.getenv("AWS_MAX_ATTEMPTS", "3")), "mode": "standard"}
)

# -----------------------------
# DynamoDB tables (one per collection)
# -----------------------------
PRODUCTS_TABLE = os.getenv("DDB_PRODUCTS_TABLE", "Products")
VENDORS_TABLE = os.getenv("DDB_VENDORS_TABLE", "Vendors")
ORDERS_TABLE = os.getenv("DDB_ORDERS_TABLE", "Orders")
CATEGORIES_TABLE = os.getenv("DDB_CATEGORIES_TABLE", "Categories")
BANNER_CARDS_TABLE = os.getenv("DDB_BANNER_CARDS_TABLE", "BannerCards")
SETTINGS_TABLE = os.getenv("DDB_SETTINGS_TABLE", "Settings")
ADMINS_TABLE = os.getenv("DDB_ADMINS_TABLE", "Admins")
CUSTOMERS_TABLE = os.getenv("DDB_CUSTOMERS_TABLE", "Customers")
VENDOR_TOKENS_TABLE = os.getenv("DDB_VENDOR_TOKENS_TABLE", "VendorTokens")
PAYMENT_SESSIONS_TABLE = os.getenv("DDB_PAYMENT_SESSIONS_TABLE", "PaymentSessions")

# table name -> partition key
TABLE_KEYS = {
    PRODUCTS_TABLE: "product_id",
    VENDORS_TABLE: "vendor_id",
    ORDERS_TABLE: "order_id",
    CATEGORIES_TABLE: "category_id",
    BANNER_CARDS_TABLE: "card_id",
    SETTINGS_TABLE: "setting_id",
    ADMINS_TABLE: "admin_id",
    CUSTOMERS_TABLE: "customer_id",
    VENDOR_TOKENS_TABLE: "token_id",
    PAYMENT_SESSIONS_TABLE: "payment_order_id",
}

# -----------------------------
# S3, SQS & SNS configuration
# -----------------------------
S3_IMAGE_BUCKET = os.getenv("S3_IMAGE_BUCKET", "quickcart-product-images")
S3_PUBLIC_BASE_URL = os.getenv("S3_PUBLIC_BASE_URL", "")

DEFAULT_QUEUE_NAME = os.getenv("SQS_NOTIFICATION_QUEUE_NAME", "quickcart-vendor-notifications")
DEFAULT_SNS_TOPIC_NAME = os.getenv("SNS_ORDER_TOPIC_NAME", "quickcart-order-notifications")

# SNS platform application used to turn vendor push tokens into endpoints
SNS_PLATFORM_APPLICATION_ARN = os.getenv("SNS_PLATFORM_APPLICATION_ARN", "")


# -----------------------------
# AWS clients/resources
# -----------------------------
def dynamodb_resource():
    return boto3.resource("dynamodb", region_name=AWS_REGION, config=boto3_config)

def sqs_client():
    return boto3.client("sqs", region_name=AWS_REGION, config=boto3_config)

def sns_client():
    return boto3.client("sns", region_name=AWS_REGION, config=boto3_config)

def s3_client():
    return boto3.client("s3", region_name=AWS_REGION, config=boto3_config)


def get_sqs_url():
    sqs = sqs_client()
    try:
        resp = sqs.get_queue_url(QueueName=DEFAULT_QUEUE_NAME)
        return resp["QueueUrl"]
    except sqs.exceptions.QueueDoesNotExist:
        # Queue does not exist → create it
        resp = sqs.create_queue(
            QueueName=DEFAULT_QUEUE_NAME,
            Attributes={
                "DelaySeconds": "0",
                "MessageRetentionPeriod": "86400"  # 1 day
            }
        )
        return resp["QueueUrl"]

def get_sns_topic_arn():
    sns = sns_client()
    next_token = None
    while True:
        resp = sns.list_topics(NextToken=next_token) if next_token else sns.list_topics()
        for t in resp.get("Topics", []):
            if t["TopicArn"].endswith(":" + DEFAULT_SNS_TOPIC_NAME):
                return t["TopicArn"]
        next_token = resp.get("NextToken")
        if not next_token:
            break
    # Topic does not exist → create it
    resp = sns.create_topic(Name=DEFAULT_SNS_TOPIC_NAME)
    return resp["TopicArn"]
