import json

from .base_client import AWSBaseClient


class SNSClient(AWSBaseClient):
    def __init__(self):
        super().__init__("sns")

    def publish(self, topic_arn, message, subject=None):
        kwargs = {"TopicArn": topic_arn, "Message": message}
        if subject:
            kwargs["Subject"] = subject
        return self.client.publish(**kwargs)

    def publish_to_endpoint(self, endpoint_arn, payloads):
        """
        Push a per-protocol payload (``{"default": ..., "GCM": ...}``) to a
        single device endpoint. Returns the SNS MessageId.
        """
        message = {k: v if isinstance(v, str) else json.dumps(v) for k, v in payloads.items()}
        resp = self.client.publish(
            TargetArn=endpoint_arn,
            Message=json.dumps(message),
            MessageStructure="json"
        )
        return resp["MessageId"]

    def create_platform_endpoint(self, application_arn, token, user_data=""):
        resp = self.client.create_platform_endpoint(
            PlatformApplicationArn=application_arn,
            Token=token,
            CustomUserData=user_data
        )
        return resp["EndpointArn"]

    def delete_endpoint(self, endpoint_arn):
        return self.client.delete_endpoint(EndpointArn=endpoint_arn)
