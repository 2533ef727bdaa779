"""
Ping handler - records a device ping in DynamoDB.

Input event (direct invoke, or API Gateway proxy with the same JSON in "body"):
{
  "device": "abc123"
}

Writes {id, device, timestamp, synced=false} to the shop_ping_log table and returns the
stored attributes as the JSON response body.
"""
import base64
import json
import logging
import os
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Protocol

import boto3
import botocore.session
from botocore.exceptions import BotoCoreError, ClientError

from ping_config import TABLE_NAME, PingConfig, SessionOptions, load_config
from ping_errors import (
    MissingDeviceID,
    ResponseEncodingFailed,
    SessionSetupFailed,
    StorageEncodingFailed,
    WriteFailed,
)
from ping_marshal import marshal_item, marshal_json, unmarshal_item

CONFIG = load_config()

logger = logging.getLogger()
logger.setLevel(CONFIG.log_level)


@dataclass(frozen=True)
class DeviceRequest:
    device: str = ""


@dataclass(frozen=True)
class PingLog:
    id: uuid.UUID
    device: str
    timestamp: datetime
    synced: bool = False


class StorageClient(Protocol):
    def put_item(self, **kwargs) -> dict: ...


class SessionFactory(Protocol):
    def __call__(self, options: SessionOptions) -> boto3.session.Session: ...


class ClientFactory(Protocol):
    def __call__(self, session: boto3.session.Session) -> StorageClient: ...


class ItemEncoder(Protocol):
    def __call__(self, value) -> dict: ...


class ResponseEncoder(Protocol):
    def __call__(self, value) -> bytes: ...


def _explicit_botocore_session(options: SessionOptions) -> botocore.session.Session:
    missing = [
        name for name, value in (
            ("aws_access_key_id", options.aws_access_key_id),
            ("aws_secret_access_key", options.aws_secret_access_key),
            ("region_name", options.region_name),
        )
        if not value
    ]
    if missing:
        logger.error(f"AWS session error: explicit mode needs {', '.join(missing)}")
        raise SessionSetupFailed(f"failed to create aws session: missing {', '.join(missing)}")

    # shared config/credentials files and AWS_PROFILE stay out of the lookup chain
    session = botocore.session.Session()
    session.set_config_variable("config_file", os.devnull)
    session.set_config_variable("credentials_file", os.devnull)
    session.set_config_variable("profile", "default")
    session.set_config_variable("region", options.region_name)
    session.set_credentials(
        options.aws_access_key_id,
        options.aws_secret_access_key,
        options.aws_session_token,
    )
    return session


def create_session(options: SessionOptions) -> boto3.session.Session:
    try:
        if options.shared_config:
            return boto3.session.Session(
                profile_name=options.profile_name,
                region_name=options.region_name,
            )
        return boto3.session.Session(
            botocore_session=_explicit_botocore_session(options),
            region_name=options.region_name,
        )
    except BotoCoreError as e:
        logger.error(f"AWS session error: {e}")
        raise SessionSetupFailed() from e


def new_client(session: boto3.session.Session) -> StorageClient:
    return session.client("dynamodb")


def parse_request(event) -> DeviceRequest:
    """Accept the payload directly or wrapped in an API Gateway proxy "body"."""
    payload = event if isinstance(event, dict) else {}

    if "body" in payload:
        body = payload.get("body") or "{}"
        try:
            if isinstance(body, str):
                if payload.get("isBase64Encoded"):
                    body = base64.b64decode(body).decode("utf-8")
                body = json.loads(body)
        except ValueError:
            logger.warning("Request body is not valid JSON")
            body = {}
        payload = body if isinstance(body, dict) else {}

    device = payload.get("device")
    if not isinstance(device, str):
        device = ""
    return DeviceRequest(device=device)


class PingIngestHandler:
    """
    Validate -> (connect once) -> build record -> put_item -> JSON response.

    All AWS touch points are injected so tests can swap them out. The storage
    client is built on first use and kept for the life of the process.
    """

    def __init__(
        self,
        table_name: str,
        session_options: Optional[SessionOptions] = None,
        create_session: SessionFactory = create_session,
        new_client: ClientFactory = new_client,
        marshal_item: ItemEncoder = marshal_item,
        marshal_json: ResponseEncoder = marshal_json,
        client: Optional[StorageClient] = None,
    ):
        self.table_name = table_name
        self.session_options = session_options or SessionOptions()
        self.create_session = create_session
        self.new_client = new_client
        self.marshal_item = marshal_item
        self.marshal_json = marshal_json
        self._client = client
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: PingConfig, **overrides) -> "PingIngestHandler":
        return cls(TABLE_NAME, config.session_options, **overrides)

    @property
    def client(self) -> Optional[StorageClient]:
        return self._client

    def _get_client(self) -> StorageClient:
        if self._client is not None:
            return self._client

        with self._lock:
            if self._client is None:
                try:
                    session = self.create_session(self.session_options)
                except SessionSetupFailed:
                    raise
                except Exception as e:
                    logger.error(f"AWS session error: {e}")
                    raise SessionSetupFailed() from e

                try:
                    self._client = self.new_client(session)
                except Exception as e:
                    logger.error(f"DynamoDB client error: {e}")
                    raise SessionSetupFailed(f"failed to create dynamodb client: {e}") from e

                logger.info(f"DynamoDB client ready (table={self.table_name})")

        return self._client

    def handle(self, request: DeviceRequest) -> tuple[bytes, int]:
        if not request.device:
            raise MissingDeviceID()

        client = self._get_client()

        log_entry = PingLog(
            id=uuid.uuid4(),
            device=request.device,
            timestamp=datetime.now(timezone.utc),
            synced=False,
        )

        try:
            item = self.marshal_item(log_entry)
        except StorageEncodingFailed:
            raise
        except Exception as e:
            logger.error(f"marshalling dynamodb item error: {e}")
            raise StorageEncodingFailed() from e

        # Unconditional write: ids are random, an existing item would be overwritten.
        try:
            response = client.put_item(TableName=self.table_name, Item=item)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"DynamoDB write error: {e}")
            raise WriteFailed(f"dynamodb put_item failed: {e}") from e

        logger.info(f"Stored ping {log_entry.id} for device {log_entry.device}")

        # PutItem only reports attributes it replaced; otherwise the store holds exactly `item`
        attributes = (response or {}).get("Attributes") or item

        try:
            body = self.marshal_json(unmarshal_item(attributes))
        except ResponseEncodingFailed:
            raise
        except Exception as e:
            logger.error(f"marshalling json error: {e}")
            raise ResponseEncodingFailed() from e

        return body, 200


ping_ingest = PingIngestHandler.from_config(CONFIG)


def handler(event, context):
    logger.debug(f"Ping event: {json.dumps(event, default=str)}")

    request = parse_request(event)
    logger.info(f"Ping request received for device {request.device!r}")
    body, status_code = ping_ingest.handle(request)

    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": body.decode("utf-8"),
    }
