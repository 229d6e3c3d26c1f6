import boto3

from aws_config import AWS_REGION, boto3_config


class AWSBaseClient:
    """
    Base wrapper for one AWS service.

    Every ``client`` / ``resource`` access builds a new boto3 session, so
    module-level wrappers in long-lived web workers and warm Lambda
    containers pick up rotated credentials.
    """

    def __init__(self, service_name, region_name=AWS_REGION):
        self.service_name = service_name
        self.region_name = region_name

    def _session(self):
        return boto3.Session(region_name=self.region_name)

    @property
    def client(self):
        return self._session().client(self.service_name, config=boto3_config)

    @property
    def resource(self):
        return self._session().resource(self.service_name, config=boto3_config)
