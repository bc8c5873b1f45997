import json
from unittest import mock

import pytest
import requests

from ctl_cluster.errors import PlutipRequestError
from ctl_cluster.plutip import (
    ClusterStartupFailure,
    ClusterStartupSuccess,
    PlutipClient,
    StopClusterFailure,
    StopClusterSuccess,
)


def response(body):
    resp = mock.Mock()
    resp.json.return_value = body
    resp.text = json.dumps(body)
    return resp


@pytest.fixture
def post():
    with mock.patch("ctl_cluster.plutip.requests.post") as p:
        yield p


def test_start_cluster_success(post):
    post.return_value = response(
        {
            "tag": "ClusterStartupSuccess",
            "contents": {
                "privateKeys": ["5820" + "aa" * 32],
                "nodeSocketPath": "/tmp/node.socket",
                "nodeConfigPath": "/tmp/node.config",
                "keysDirectory": "/tmp/keys",
            },
        }
    )
    client = PlutipClient("http://127.0.0.1:8082/")

    result = client.start_cluster([[1_000_000_000]])

    assert result == ClusterStartupSuccess(
        private_keys=["5820" + "aa" * 32],
        node_socket_path="/tmp/node.socket",
        node_config_path="/tmp/node.config",
        keys_directory="/tmp/keys",
    )
    args, kwargs = post.call_args
    assert args == ("http://127.0.0.1:8082/start",)
    assert kwargs["json"] == {"keysToGenerate": [[1_000_000_000]]}


def test_start_cluster_failure_reason(post):
    post.return_value = response(
        {"tag": "ClusterStartupFailure", "contents": {"tag": "NegativeLovelaces"}}
    )
    result = PlutipClient("http://x").start_cluster([[-1]])
    assert result == ClusterStartupFailure("NegativeLovelaces")


def test_malformed_success_is_rejected(post):
    post.return_value = response({"tag": "ClusterStartupSuccess", "contents": {}})
    with pytest.raises(PlutipRequestError):
        PlutipClient("http://x").start_cluster([])


def test_stop_cluster(post):
    post.return_value = response({"tag": "StopClusterSuccess"})
    assert PlutipClient("http://x").stop_cluster() == StopClusterSuccess()
    assert post.call_args.kwargs["json"] == []

    post.return_value = response({"tag": "StopClusterFailure", "contents": "busy"})
    assert PlutipClient("http://x").stop_cluster() == StopClusterFailure("busy")


def test_unknown_tag_is_rejected(post):
    post.return_value = response({"tag": "Surprise"})
    with pytest.raises(PlutipRequestError, match="Surprise"):
        PlutipClient("http://x").stop_cluster()


def test_invalid_json_is_rejected(post):
    resp = response(None)
    resp.json.side_effect = json.JSONDecodeError("Expecting value", "oops", 0)
    resp.text = "oops"
    post.return_value = resp
    with pytest.raises(PlutipRequestError, match="invalid JSON"):
        PlutipClient("http://x").stop_cluster()


def test_connection_errors_propagate(post):
    post.side_effect = requests.ConnectionError("refused")
    with pytest.raises(requests.ConnectionError):
        PlutipClient("http://x").stop_cluster()
