from typing import Any, Dict


def raw_event_key(received_at: str, event_id: str) -> str:
    """Object key of the raw copy of an event"""
    return f"events/{received_at}-{event_id}.json"


class RawEventStore:
    """Archives request bodies verbatim in S3"""

    def __init__(self, client, bucket_name: str | None):
        self.client = client
        self.bucket_name = bucket_name

    def put(self, key: str, body: str) -> None:
        self.client.put_object(
            Bucket=self.bucket_name,
            Key=key,
            Body=body.encode("utf-8"),
            ContentType="application/json"
        )


class EventRecordStore:
    """Normalized event records in DynamoDB, keyed by eventId"""

    def __init__(self, dynamodb, table_name: str | None):
        self.dynamodb = dynamodb
        self.table_name = table_name

    def put(self, item: Dict[str, Any]) -> None:
        table = self.dynamodb.Table(self.table_name)
        table.put_item(Item=item)
