"""
Websocket JSON-WSP connections to the query node (Ogmios) and the datum indexer.
"""

import contextlib
import json
import logging
from typing import Any

from websockets.sync.client import ClientConnection, connect

from ctl_cluster.errors import JsonWspFault


class JsonWspConnection:
    """
    Synchronous JSON-WSP client over a single websocket.

    Requests carry a `mirror` id and replies are matched on the echoed `reflection`; replies to
    earlier requests that timed out on our side are skipped.

    Usage:
        with OgmiosConnection("ws://127.0.0.1:1338").open() as ogmios:
            params = ogmios.current_protocol_parameters()
    """

    servicename = "ogmios"

    def __init__(self, url: str, name: str | None = None, timeout: float = 30):
        self.url = url
        self.name = name or url
        self.timeout = timeout
        self.id_counter = 0
        self.logger = logging.getLogger(f"jsonwsp.{self.name}")
        self._ws: ClientConnection | None = None
        self._exit_stack: contextlib.ExitStack | None = None

    @property
    def is_open(self) -> bool:
        return self._ws is not None

    def open(self) -> "JsonWspConnection":
        """
        Connect the websocket.

        Raises:
            OSError: If nothing is listening yet
            websockets.exceptions.InvalidHandshake: If the handshake is rejected
        """
        if self._ws is None:
            # websockets >= 17.1 expects connect() to be entered as a context manager
            stack = contextlib.ExitStack()
            self._ws = stack.enter_context(connect(self.url, open_timeout=self.timeout))
            self._exit_stack = stack
            self.logger.debug(f"connected to {self.url}")
        return self

    def request(self, methodname: str, args: dict[str, Any] | None = None) -> Any:
        """
        Make a JSON-WSP request and wait for its reply.

        Returns:
            The `result` field of the reply

        Raises:
            JsonWspFault: If the service answers with a fault
            TimeoutError: If no reply arrives within `timeout`
        """
        if self._ws is None:
            raise RuntimeError(f"connection to {self.url} is not open")

        self.id_counter += 1
        request_id = self.id_counter
        payload = {
            "type": "jsonwsp/request",
            "version": "1.0",
            "servicename": self.servicename,
            "methodname": methodname,
            "args": args or {},
            "mirror": {"id": request_id},
        }
        self.logger.debug(f"request: {methodname}({args})")
        self._ws.send(json.dumps(payload))

        while True:
            msg = json.loads(self._ws.recv(timeout=self.timeout))
            reflection = msg.get("reflection") or {}
            if reflection.get("id") == request_id:
                break
            self.logger.debug(f"skipping stale reply: {reflection}")

        if "fault" in msg:
            self.logger.warning(f"fault: {msg['fault']}")
            raise JsonWspFault(msg["fault"])
        return msg.get("result")

    def close(self) -> None:
        if self._ws is not None:
            stack, self._exit_stack, self._ws = self._exit_stack, None, None
            stack.close()
            self.logger.debug(f"closed {self.url}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class OgmiosConnection(JsonWspConnection):
    """Local state queries against the query node."""

    servicename = "ogmios"

    def query(self, query: str | dict[str, Any]) -> Any:
        return self.request("Query", {"query": query})

    def current_protocol_parameters(self) -> dict[str, Any]:
        return self.query("currentProtocolParameters")

    def chain_tip(self) -> Any:
        return self.query("chainTip")


class DatumCacheConnection(JsonWspConnection):
    """Lookups against the datum indexer (ogmios-datum-cache)."""

    servicename = "ogmios-datum-cache"

    def get_datum_by_hash(self, datum_hash: str) -> Any:
        return self.request("GetDatumByHash", {"hash": datum_hash})

    def get_datums_by_hashes(self, datum_hashes: list[str]) -> Any:
        return self.request("GetDatumsByHashes", {"hashes": datum_hashes})

    def get_tx_by_hash(self, tx_hash: str) -> Any:
        return self.request("GetTxByHash", {"hash": tx_hash})
