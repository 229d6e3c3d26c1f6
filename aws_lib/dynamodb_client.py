from decimal import Decimal

from aws_config import TABLE_KEYS

from .base_client import AWSBaseClient


class DynamoDBClient(AWSBaseClient):
    def __init__(self):
        super().__init__("dynamodb")

    def _deserialize(self, value):
        """Convert DynamoDB data into plain Python types."""
        if isinstance(value, dict):
            return {k: self._deserialize(v) for k, v in value.items()}
        if isinstance(value, (list, set)):
            return [self._deserialize(v) for v in value]
        if isinstance(value, Decimal):
            return int(value) if value % 1 == 0 else float(value)
        return value

    def _convert_to_decimal(self, data):
        """Recursively convert numbers to Decimal for DynamoDB writes."""
        if isinstance(data, dict):
            return {k: self._convert_to_decimal(v) for k, v in data.items()}
        if isinstance(data, (list, tuple)):
            return [self._convert_to_decimal(v) for v in data]
        if isinstance(data, bool):
            return data
        if isinstance(data, int):
            return Decimal(data)
        if isinstance(data, float):
            # str() keeps 19.99 as 19.99 instead of its binary expansion
            return Decimal(str(data))
        return data

# CRUD

    def put(self, table, item):
        tbl = self.resource.Table(table)
        clean_item = self._convert_to_decimal(item)
        return tbl.put_item(Item=clean_item)

    def get(self, table, key):
        tbl = self.resource.Table(table)
        resp = tbl.get_item(Key=key)
        item = resp.get("Item")
        return self._deserialize(item) if item else {}

    def scan(self, table, condition=None, limit=None):
        """
        Scan a whole table, following LastEvaluatedKey pages.

        ``condition`` is a boto3.dynamodb.conditions expression
        (``Attr("status").eq("active")``). ``limit`` stops once that many
        matching items have been collected.
        """
        tbl = self.resource.Table(table)
        kwargs = {}
        if condition is not None:
            kwargs["FilterExpression"] = condition

        items = []
        while True:
            resp = tbl.scan(**kwargs)
            items.extend(resp.get("Items", []))
            if limit is not None and len(items) >= limit:
                items = items[:limit]
                break
            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                break
            kwargs["ExclusiveStartKey"] = last_key
        return [self._deserialize(i) for i in items]

    def update(self, table, key, values):
        """
        Set the given attributes on an existing item and return the
        item as stored after the update.
        """
        tbl = self.resource.Table(table)
        names = {}
        exprs = []
        attr_values = {}
        for i, (field, value) in enumerate(values.items()):
            names[f"#f{i}"] = field
            attr_values[f":v{i}"] = self._convert_to_decimal(value)
            exprs.append(f"#f{i} = :v{i}")

        resp = tbl.update_item(
            Key=key,
            UpdateExpression="SET " + ", ".join(exprs),
            ExpressionAttributeNames=names,
            ExpressionAttributeValues=attr_values,
            ReturnValues="ALL_NEW"
        )
        return self._deserialize(resp.get("Attributes", {}))

    def delete(self, table, key):
        """
        Delete an item from the DynamoDB table.
        """
        tbl = self.resource.Table(table)
        return tbl.delete_item(Key=key)

    def clear(self, table):
        """Delete every item of a table. Returns the number removed."""
        tbl = self.resource.Table(table)
        key_name = TABLE_KEYS.get(table) or tbl.key_schema[0]["AttributeName"]
        items = self.scan(table)
        with tbl.batch_writer() as batch:
            for item in items:
                batch.delete_item(Key={key_name: item[key_name]})
        return len(items)
