from __future__ import annotations
from typing import Any, Iterable, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from autoconsul.config import const
from autoconsul.domain import StorageUnavailable


class S3ObjectStore:
    """Реестр в бакете S3. Клиент boto3 создаётся лениво, если не передан явно."""

    def __init__(self, bucket: str, *, client: Any = None, region_name: Optional[str] = None) -> None:
        self.bucket = bucket
        self._client = client
        self._region_name = region_name

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = boto3.client("s3", region_name=self._region_name)
        return self._client

    def list_keys(self, prefix: str) -> List[str]:
        keys: List[str] = []
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                keys.extend(obj["Key"] for obj in page.get("Contents", []))
        except (BotoCoreError, ClientError) as e:
            raise StorageUnavailable("list", prefix, str(e)) from e
        # S3 и так отдаёт ключи в порядке UTF-8, но не все совместимые хранилища
        return sorted(keys)

    def get(self, key: str) -> bytes:
        try:
            resp = self.client.get_object(Bucket=self.bucket, Key=key)
            return resp["Body"].read()
        except (BotoCoreError, ClientError) as e:
            raise StorageUnavailable("get", key, str(e)) from e

    def put(self, key: str, data: bytes) -> Any:
        try:
            return self.client.put_object(Bucket=self.bucket, Key=key, Body=data)
        except (BotoCoreError, ClientError) as e:
            raise StorageUnavailable("put", key, str(e)) from e

    def delete_many(self, keys: Iterable[str]) -> int:
        pending = list(keys)
        deleted = 0
        for i in range(0, len(pending), const.S3_DELETE_BATCH):
            batch = pending[i : i + const.S3_DELETE_BATCH]
            try:
                resp = self.client.delete_objects(
                    Bucket=self.bucket,
                    Delete={"Objects": [{"Key": k} for k in batch], "Quiet": True},
                )
            except (BotoCoreError, ClientError) as e:
                raise StorageUnavailable("delete", batch[0], str(e)) from e
            errors = resp.get("Errors") or []
            if errors:
                first = errors[0]
                raise StorageUnavailable("delete", first.get("Key"), first.get("Message"))
            deleted += len(batch)
        return deleted
