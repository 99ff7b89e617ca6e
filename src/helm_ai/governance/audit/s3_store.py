"""S3-backed audit store for immutable, per-record audit objects."""

import logging
import threading
from datetime import datetime
from typing import List, Optional

import boto3
from botocore.exceptions import ClientError

from helm_ai.common.constants import AuditConstants
from helm_ai.governance.schemas import AuditRecord, AuditStatus
from helm_ai.governance.audit.store import (
    AuditStore,
    _as_utc,
    newest_first,
    partition_dates,
    record_matches,
)

logger = logging.getLogger(__name__)


class S3AuditStore(AuditStore):
    """S3-backed audit store writing one JSON object per record.

    Key layout: {prefix}{environment}/{YYYY-MM-DD}/{epochMillis}_{record_id}.json
    """

    DEFAULT_REGION = "us-east-1"
    DEFAULT_PREFIX = "audit-records/"
    DEFAULT_ENVIRONMENT = "development"

    def __init__(
        self,
        bucket_name: str,
        prefix: str = DEFAULT_PREFIX,
        environment: str = DEFAULT_ENVIRONMENT,
        region: Optional[str] = None,
        enable_versioning: bool = True,
        s3_client=None,
    ):
        if not bucket_name:
            raise ValueError("S3 bucket name required. Set HELM_AUDIT_S3_BUCKET.")

        self.bucket_name = bucket_name
        self.prefix = prefix
        self.environment = environment
        self.region = region or self.DEFAULT_REGION
        self.enable_versioning = enable_versioning
        self.s3_client = s3_client or boto3.client("s3", region_name=self.region)

        self._lock = threading.Lock()

        self._ensure_bucket_configured()

        logger.info(
            f"Initialized S3AuditStore: bucket={self.bucket_name}, "
            f"env={self.environment}, versioning={self.enable_versioning}"
        )

    def _ensure_bucket_configured(self) -> None:
        """Ensure S3 bucket exists and is configured correctly."""
        try:
            self.s3_client.head_bucket(Bucket=self.bucket_name)
        except ClientError as e:
            if e.response["Error"]["Code"] == "404":
                raise ValueError(f"S3 bucket {self.bucket_name} does not exist")
            raise

        if self.enable_versioning:
            try:
                self.s3_client.put_bucket_versioning(
                    Bucket=self.bucket_name,
                    VersioningConfiguration={"Status": "Enabled"},
                )
            except ClientError as e:
                logger.warning(f"Could not enable versioning: {e}")

    @property
    def environment_prefix(self) -> str:
        return f"{self.prefix}{self.environment}/"

    def _partition_prefix(self, day: str) -> str:
        """Format: {prefix}{environment}/{date}/"""
        return f"{self.environment_prefix}{day}/"

    def object_key(self, record: AuditRecord) -> str:
        """S3 key for a record, derived from its own timestamp and id."""
        timestamp = _as_utc(record.timestamp)
        millis = int(timestamp.timestamp() * 1000)
        return f"{self._partition_prefix(timestamp.strftime('%Y-%m-%d'))}{millis}_{record.id}.json"

    def append_record(self, record: AuditRecord) -> AuditRecord:
        """Write the record as a new S3 object.

        Raises:
            IOError: If write fails
        """
        key = self.object_key(record)
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=record.to_jsonl().encode("utf-8"),
                ContentType="application/json",
                Metadata={
                    "status": record.status.value,
                    "request-id": record.request_id,
                    "environment": self.environment,
                },
            )
        except ClientError as e:
            logger.error(f"Failed to append to S3: {e}")
            raise IOError(f"S3 write failed: {e}") from e

        logger.debug(f"Appended audit record to S3: {key}")
        return record

    def _list_dates(self) -> List[str]:
        dates = []
        paginator = self.s3_client.get_paginator("list_objects_v2")
        for page in paginator.paginate(
            Bucket=self.bucket_name, Prefix=self.environment_prefix, Delimiter="/"
        ):
            for common in page.get("CommonPrefixes", []):
                day = common["Prefix"][len(self.environment_prefix):].rstrip("/")
                if day:
                    dates.append(day)
        return dates

    def _read_partition(self, day: str) -> List[AuditRecord]:
        records = []
        paginator = self.s3_client.get_paginator("list_objects_v2")
        for page in paginator.paginate(
            Bucket=self.bucket_name, Prefix=self._partition_prefix(day)
        ):
            for obj in page.get("Contents", []):
                key = obj["Key"]
                try:
                    response = self.s3_client.get_object(Bucket=self.bucket_name, Key=key)
                    body = response["Body"].read().decode("utf-8")
                    records.append(AuditRecord.from_jsonl(body))
                except (ClientError, ValueError) as e:
                    logger.warning(f"Could not read/parse audit record {key}: {e}")
        return records

    def get_records(
        self,
        request_id: Optional[str] = None,
        actor: Optional[str] = None,
        status: Optional[AuditStatus] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: Optional[int] = AuditConstants.DEFAULT_QUERY_LIMIT,
    ) -> List[AuditRecord]:
        """Retrieve audit records from the date partitions covering the range.

        Raises:
            IOError: If listing fails
        """
        try:
            matching = []
            for day in partition_dates(start, end, self._list_dates()):
                for record in self._read_partition(day):
                    if record_matches(record, request_id, actor, status, start, end):
                        matching.append(record)
        except ClientError as e:
            logger.error(f"Failed to list S3 objects: {e}")
            raise IOError(f"S3 read failed: {e}") from e

        return newest_first(matching, limit)
