from .base_client import AWSBaseClient


class SQSClient(AWSBaseClient):
    def __init__(self):
        super().__init__("sqs")

    def send_message(self, queue_url, body, delay_seconds=0):
        resp = self.client.send_message(
            QueueUrl=queue_url,
            MessageBody=body,
            DelaySeconds=delay_seconds
        )
        return resp["MessageId"]

    def receive_messages(self, queue_url, max_messages=1, wait_seconds=5):
        resp = self.client.receive_message(
            QueueUrl=queue_url,
            MaxNumberOfMessages=min(max_messages, 10),
            WaitTimeSeconds=wait_seconds
        )
        return resp.get("Messages", [])

    def delete_message(self, queue_url, receipt_handle):
        self.client.delete_message(QueueUrl=queue_url, ReceiptHandle=receipt_handle)

    def purge(self, queue_url):
        """Drop every message; SQS allows one purge per queue per minute."""
        self.client.purge_queue(QueueUrl=queue_url)
