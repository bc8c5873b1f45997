"""
HTTP client for the chain-emulator control service (plutip-server).
"""

import json
import logging
from dataclasses import dataclass
from typing import Any

import requests

from ctl_cluster.errors import PlutipRequestError


@dataclass(frozen=True)
class ClusterStartupSuccess:
    private_keys: list[str]
    node_socket_path: str
    node_config_path: str
    keys_directory: str


@dataclass(frozen=True)
class ClusterStartupFailure:
    reason: str


ClusterStartupResult = ClusterStartupSuccess | ClusterStartupFailure


@dataclass(frozen=True)
class StopClusterSuccess:
    pass


@dataclass(frozen=True)
class StopClusterFailure:
    reason: str


StopClusterResult = StopClusterSuccess | StopClusterFailure


def _failure_reason(contents: Any) -> str:
    # Reasons come either as a bare string or as a tagged object.
    if isinstance(contents, dict) and "tag" in contents:
        return str(contents["tag"])
    return str(contents)


class PlutipClient:
    """
    Client for the emulator's `/start` and `/stop` endpoints.

    Usage:
        client = PlutipClient("http://127.0.0.1:8082")
        result = client.start_cluster([[1_000_000_000, 2_000_000_000]])
        client.stop_cluster()
    """

    def __init__(
        self,
        url: str,
        name: str | None = None,
        timeout: int = 30,
        start_timeout: int = 300,
    ):
        self.url = url.rstrip("/")
        self.name = name or url
        self.timeout = timeout
        self.start_timeout = start_timeout
        self.logger = logging.getLogger(f"plutip.{self.name}")

    def _post(self, path: str, payload: Any, timeout: int) -> Any:
        """
        POST a JSON payload and decode the JSON reply.

        Raises:
            PlutipRequestError: If the reply is not JSON
            requests.RequestException: If the HTTP request fails
        """
        self.logger.debug(f"POST {path}: {payload}")
        try:
            resp = requests.post(f"{self.url}{path}", json=payload, timeout=timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            self.logger.debug(f"request to {path} failed: {e}")
            raise

        try:
            return resp.json()
        except json.JSONDecodeError as e:
            self.logger.warning(f"Invalid JSON response: {resp.text}")
            raise PlutipRequestError(f"invalid JSON from {path}: {e}") from e

    def start_cluster(self, keys_to_generate: list[list[int]]) -> ClusterStartupResult:
        """
        Ask the emulator to start a cluster funding one wallet per entry.

        Args:
            keys_to_generate: For every wallet, the amounts (lovelace) of its initial UTxOs
        """
        body = self._post("/start", {"keysToGenerate": keys_to_generate}, self.start_timeout)
        tag = body.get("tag") if isinstance(body, dict) else None

        if tag == "ClusterStartupFailure":
            return ClusterStartupFailure(_failure_reason(body.get("contents")))

        if tag == "ClusterStartupSuccess":
            contents = body.get("contents")
            try:
                return ClusterStartupSuccess(
                    private_keys=list(contents["privateKeys"]),
                    node_socket_path=contents["nodeSocketPath"],
                    node_config_path=contents["nodeConfigPath"],
                    keys_directory=contents["keysDirectory"],
                )
            except (KeyError, TypeError) as e:
                raise PlutipRequestError(f"malformed ClusterStartupSuccess: {body}") from e

        raise PlutipRequestError(f"unexpected /start response: {body}")

    def stop_cluster(self) -> StopClusterResult:
        """
        Ask the emulator to stop its cluster.

        Also used as a liveness probe: any well-formed reply means the service is accepting
        requests, whether or not a cluster was running.
        """
        body = self._post("/stop", [], self.timeout)
        tag = body.get("tag") if isinstance(body, dict) else None

        if tag == "StopClusterSuccess":
            return StopClusterSuccess()
        if tag == "StopClusterFailure":
            return StopClusterFailure(_failure_reason(body.get("contents")))

        raise PlutipRequestError(f"unexpected /stop response: {body}")
