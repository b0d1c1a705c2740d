import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from botocore.config import Config

LOCAL_ENDPOINT = "http://localhost:8000"
LOCAL_REGION = "localhost"
DEFAULT_REGION = "us-east-1"


def _is_true(value: str | None) -> bool:
    return value == "true"


@dataclass(frozen=True)
class ConnectionSettings:
    """
    Selects which DynamoDB endpoint the shared client talks to.

    Offline mode targets a DynamoDB Local instance; otherwise the regional
    AWS endpoint (or an explicit override) is used. These settings only pick
    the connection target, they never change how requests are built.
    """

    region: str = DEFAULT_REGION
    endpoint_url: str | None = None
    offline: bool = False
    max_pool_connections: int = 50
    tcp_keepalive: bool = True
    extra_client_kwargs: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ConnectionSettings":
        """
        Builds settings from environment variables.

        - IS_OFFLINE="true" selects DynamoDB Local unless FORCE_ONLINE="true"
        - AWS_REGION / AWS_DEFAULT_REGION pick the region
        - DYNAMODB_ENDPOINT overrides the endpoint when online
        """
        env = os.environ if environ is None else environ

        if _is_true(env.get("IS_OFFLINE")) and not _is_true(env.get("FORCE_ONLINE")):
            return cls(region=LOCAL_REGION, endpoint_url=LOCAL_ENDPOINT, offline=True)

        region = env.get("AWS_REGION") or env.get("AWS_DEFAULT_REGION") or DEFAULT_REGION
        return cls(region=region, endpoint_url=env.get("DYNAMODB_ENDPOINT") or None)

    def client_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``boto3.client("dynamodb", ...)``."""
        kwargs: dict[str, Any] = {
            "region_name": self.region,
            "config": Config(
                max_pool_connections=self.max_pool_connections,
                tcp_keepalive=self.tcp_keepalive,
            ),
        }
        if self.endpoint_url:
            kwargs["endpoint_url"] = self.endpoint_url
        kwargs.update(self.extra_client_kwargs)
        return kwargs
