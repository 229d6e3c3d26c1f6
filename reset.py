"""
Wipe every table and the notification queue, then seed the platform
defaults: global pincodes, the starter categories, banner cards and an
admin account (``RESET_ADMIN_EMAIL`` / ``RESET_ADMIN_PASSWORD``).
"""
import os

import django
from botocore.exceptions import ClientError

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "quickcart.settings")
django.setup()

from aws_config import TABLE_KEYS, get_sqs_url  # noqa: E402
from aws_lib.sqs_client import SQSClient  # noqa: E402
from commerce import documents  # noqa: E402

STARTER_CATEGORIES = [
    "Fruits & Vegetables",
    "Dairy, Bread & Eggs",
    "Grocery",
    "Snacks & Beverages",
    "Personal Care",
]


def clear_tables():
    for table_name in TABLE_KEYS:
        removed = documents.ddb.clear(table_name)
        print(f"Cleared {removed} items from {table_name}")


def clear_queue():
    sqs = SQSClient()
    queue_url = get_sqs_url()
    try:
        sqs.purge(queue_url)
        print("Purged the notification queue")
        return
    except ClientError as e:
        if e.response["Error"]["Code"] != "AWS.SimpleQueueService.PurgeQueueInProgress":
            raise
    # a purge ran less than a minute ago; drain by hand
    drained = 0
    while True:
        messages = sqs.receive_messages(queue_url, max_messages=10, wait_seconds=1)
        if not messages:
            break
        for m in messages:
            sqs.delete_message(queue_url, m["ReceiptHandle"])
            drained += 1
    print(f"Drained {drained} messages from the notification queue")


def seed():
    pincodes = documents.get_global_pincodes()
    print(f"Global pincodes: {', '.join(pincodes)}")

    for name in STARTER_CATEGORIES:
        documents.add_category(name)
    print(f"Inserted {len(STARTER_CATEGORIES)} categories")

    cards = documents.list_banner_cards()
    print(f"Inserted {len(cards)} banner cards")

    email = os.getenv("RESET_ADMIN_EMAIL", "admin@example.com")
    password = os.getenv("RESET_ADMIN_PASSWORD")
    if password:
        documents.create_admin(email, password)
        print(f"Admin account created: {email}")
    else:
        print("RESET_ADMIN_PASSWORD not set; no admin account created")


if __name__ == "__main__":
    clear_tables()
    clear_queue()
    seed()
