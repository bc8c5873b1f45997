"""
Orchestration order and failure semantics, with in-memory stand-ins for every service.
"""

import dataclasses
import socket

import pytest

from ctl_cluster.config import ClusterConfig, PostgresConfig, ServerConfig, ServiceType
from ctl_cluster.errors import (
    ClusterStartupError,
    ClusterStopError,
    KeyDecodeError,
    PortConflict,
    ProcessExitedEarly,
)
from ctl_cluster.orchestrator import ClusterOrchestrator
from ctl_cluster.plutip import (
    ClusterStartupFailure,
    ClusterStartupSuccess,
    StopClusterFailure,
    StopClusterSuccess,
)
from ctl_cluster.wallet import KeyWallet

from conftest import free_ports

KEYS = ["5820" + "11" * 32, "5820" + "22" * 32]


class FakeConnection:
    def __init__(self, name, events):
        self.name = name
        self.events = events

    def current_protocol_parameters(self):
        return {"minFeeCoefficient": 44}

    def close(self):
        self.events.append(f"close {self.name}")


class FakeClient:
    def __init__(self, events, startup, stop):
        self.events = events
        self.startup = startup
        self.stop = stop
        self.requested = None

    def start_cluster(self, keys_to_generate):
        self.events.append("start cluster")
        self.requested = keys_to_generate
        return self.startup

    def stop_cluster(self):
        self.events.append("stop cluster")
        return self.stop


class FakeService:
    def __init__(self, name, events, client=None):
        self.name = name
        self.events = events
        self.client = client

    def create_client(self):
        return self.client

    def open_connection(self):
        return FakeConnection(self.name, self.events)

    def get_prop(self, name):
        assert name == "url"
        return f"http://fake/{self.name}"

    def stop(self):
        self.events.append(f"stop {self.name}")


class FakeFactory:
    def __init__(self, name, events, fail=False, client=None):
        self.name = name
        self.events = events
        self.fail = fail
        self.client = client
        self.calls = []

    def create(self, ctx, *args):
        self.events.append(f"start {self.name}")
        self.calls.append(args)
        if self.fail:
            raise ProcessExitedEarly(self.name, 1, ["boom"])
        return FakeService(self.name, self.events, self.client)


@pytest.fixture
def events():
    return []


@pytest.fixture
def config(tmp_path):
    ports = free_ports(5)
    return ClusterConfig(
        port=ports[0],
        postgres=PostgresConfig(port=ports[1]),
        ogmios=ServerConfig(port=ports[2]),
        datum_cache=ServerConfig(port=ports[3]),
        ctl_server=ServerConfig(port=ports[4]),
        workdir=str(tmp_path / "work"),
    )


def make_factories(
    events,
    fail=None,
    startup=None,
    stop=None,
):
    startup = startup or ClusterStartupSuccess(
        KEYS, "/tmp/node.socket", "/tmp/node.config", "/tmp/keys"
    )
    client = FakeClient(events, startup, stop or StopClusterSuccess())
    return {
        t: FakeFactory(
            str(t),
            events,
            fail=(t == fail),
            client=client if t == ServiceType.Plutip else None,
        )
        for t in ServiceType
    }


def test_full_run_starts_in_order_and_stops_in_reverse(config, events):
    factories = make_factories(events)
    orch = ClusterOrchestrator(config, factories)

    def body(env, wallets):
        events.append("body")
        assert env.protocol_parameters == {"minFeeCoefficient": 44}
        assert env.ctl_server_url == "http://fake/ctl_server"
        assert all(isinstance(w, KeyWallet) for w in wallets)
        return len(wallets)

    assert orch.run([[1_000_000_000], [2_000_000_000]], body) == 2
    assert events == [
        "start plutip",
        "start cluster",
        "start postgres",
        "start ogmios",
        "start datum_cache",
        "start ctl_server",
        "body",
        "close ogmios",
        "close datum_cache",
        "stop ctl_server",
        "stop datum_cache",
        "stop ogmios",
        "stop postgres",
        "stop cluster",
        "stop plutip",
    ]
    assert factories[ServiceType.Plutip].client.requested == [[1_000_000_000], [2_000_000_000]]
    assert factories[ServiceType.Ogmios].calls == [
        (config.ogmios, "/tmp/node.socket", "/tmp/node.config")
    ]


def test_ctl_server_is_skipped_when_not_configured(config, events):
    config = dataclasses.replace(config, ctl_server=None)
    orch = ClusterOrchestrator(config, make_factories(events))
    with orch.start({"alice": [1], "bob": [2]}) as (env, wallets):
        assert env.ctl_server_url is None
        assert sorted(wallets) == ["alice", "bob"]
    assert "start ctl_server" not in events


def test_failure_tears_down_started_services_in_reverse(config, events):
    orch = ClusterOrchestrator(config, make_factories(events, fail=ServiceType.Ogmios))

    with pytest.raises(ProcessExitedEarly):
        orch.run([[1], [2]], lambda env, wallets: events.append("body"))

    assert events == [
        "start plutip",
        "start cluster",
        "start postgres",
        "start ogmios",
        "stop postgres",
        "stop cluster",
        "stop plutip",
    ]


def test_cluster_startup_failure(config, events):
    factories = make_factories(events, startup=ClusterStartupFailure("NegativeLovelaces"))
    with pytest.raises(ClusterStartupError, match="NegativeLovelaces"):
        ClusterOrchestrator(config, factories).run([[1], [2]], lambda env, wallets: None)
    assert events == ["start plutip", "start cluster", "stop plutip"]


def test_key_count_mismatch_stops_cluster(config, events):
    orch = ClusterOrchestrator(config, make_factories(events))
    with pytest.raises(KeyDecodeError):
        orch.run([[1]], lambda env, wallets: None)
    assert events == ["start plutip", "start cluster", "stop cluster", "stop plutip"]


def test_body_error_propagates_after_teardown(config, events):
    orch = ClusterOrchestrator(config, make_factories(events))

    def body(env, wallets):
        raise AssertionError("test failed")

    with pytest.raises(AssertionError, match="test failed"):
        orch.run([[1], [2]], body)
    assert events[-1] == "stop plutip"
    assert events.count("stop postgres") == 1


def test_environment_is_unusable_after_run(config, events):
    env = ClusterOrchestrator(config, make_factories(events)).run([[1], [2]], lambda env, w: env)
    assert env.closed


def test_cluster_stop_failure_is_logged_not_raised(config, events, caplog):
    factories = make_factories(events, stop=StopClusterFailure("still running"))
    ClusterOrchestrator(config, factories).run([[1], [2]], lambda env, wallets: None)
    assert events[-2:] == ["stop cluster", "stop plutip"]
    assert ClusterStopError.__name__ in caplog.text


def test_port_conflict_spawns_nothing(config, events):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind((config.datum_cache.host, config.datum_cache.port))
        s.listen()
        with pytest.raises(PortConflict) as e:
            ClusterOrchestrator(config, make_factories(events)).run(None, lambda env, w: None)
    assert set(e.value.conflicts) == {"datum_cache"}
    assert events == []


def test_temporary_workdir_is_removed(config, events):
    config = dataclasses.replace(config, workdir=None)
    orch = ClusterOrchestrator(config, make_factories(events))
    seen = []

    class RecordingFactory(FakeFactory):
        def create(self, ctx, *args):
            seen.append(ctx.make_service_dir("probe"))
            return super().create(ctx, *args)

    orch.factories[ServiceType.Postgres] = RecordingFactory("postgres", events)
    orch.run([[1], [2]], lambda env, wallets: None)
    assert seen and not seen[0].exists()
