import pytest
import toml

from ctl_cluster.config import ClusterConfig, PostgresConfig, ServerConfig, ServiceType


def test_defaults():
    cfg = ClusterConfig()
    assert cfg.plutip_url == "http://127.0.0.1:8082"
    assert cfg.ogmios.ws_url() == "ws://127.0.0.1:1338"
    assert cfg.datum_cache.port == 10000
    assert cfg.postgres == PostgresConfig(
        port=5433, user="ctxlib", password="ctxlib", dbname="ctxlib"
    )
    assert cfg.ctl_server is None
    assert cfg.log_level == "INFO"


def test_service_ports_in_startup_order():
    cfg = ClusterConfig(ctl_server=ServerConfig(port=8083))
    assert list(cfg.service_ports()) == [
        ServiceType.Plutip,
        ServiceType.Postgres,
        ServiceType.Ogmios,
        ServiceType.DatumCache,
        ServiceType.CtlServer,
    ]
    assert ServiceType.CtlServer not in ClusterConfig().service_ports()


def test_urls_honour_secure_and_path():
    server = ServerConfig(host="example.org", port=443, secure=True, path="api")
    assert server.http_url() == "https://example.org:443/api"
    assert server.ws_url() == "wss://example.org:443/api"


def test_toml_round_trip():
    cfg = ClusterConfig(
        port=9000,
        suppress_logs=True,
        postgres=PostgresConfig(port=6000, password="secret"),
        ctl_server=ServerConfig(port=9001),
    )
    assert ClusterConfig.from_dict(toml.loads(cfg.as_toml_string())) == cfg
    assert ClusterConfig.from_dict(toml.loads(ClusterConfig().as_toml_string())) == ClusterConfig()


def test_from_toml_file(tmp_path):
    path = tmp_path / "cluster.toml"
    path.write_text('port = 9100\n\n[ogmios]\nport = 9101\n\n[binaries]\nogmios = "/opt/ogmios"\n')
    cfg = ClusterConfig.from_toml_file(path)
    assert cfg.port == 9100
    assert cfg.ogmios.port == 9101
    assert cfg.ogmios.host == "127.0.0.1"
    assert cfg.binaries.ogmios == "/opt/ogmios"


@pytest.mark.parametrize(
    "data",
    [{"prot": 1}, {"postgres": {"usr": "x"}}, {"binaries": {"node": "cardano-node"}}],
)
def test_unknown_keys_are_rejected(data):
    with pytest.raises(ValueError, match="unknown"):
        ClusterConfig.from_dict(data)


def test_partial_sections_keep_service_defaults():
    cfg = ClusterConfig.from_dict(
        {
            "ogmios": {"host": "0.0.0.0"},
            "datum_cache": {"secure": True},
            "ctl_server": {"host": "127.0.0.1"},
            "postgres": {"password": "secret"},
        }
    )
    assert cfg.ogmios == ServerConfig(host="0.0.0.0", port=1338)
    assert cfg.datum_cache.port == 10000
    assert cfg.ctl_server.port == 8083
    assert cfg.postgres == PostgresConfig(password="secret")
