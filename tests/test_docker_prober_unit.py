# tests/test_docker_prober_unit.py
import json
import subprocess

import pytest

from conncheck.errors import ProbeContractError
from conncheck.prober.base import (
    with_duration,
    with_namespace_path,
    with_recv_len,
    with_send_len,
    with_source_ip,
    with_source_port,
)
from conncheck.prober.docker import DockerProber, Workload

RESULT = {
    "LastResponse": {
        "Timestamp": "2020-01-01T00:00:00Z",
        "SourceAddr": "10.65.0.1:43210",
        "ServerAddr": "10.65.0.2:8055",
        "Request": {"ID": "abc", "Payload": "hello"},
    },
    "Stats": {"RequestsSent": 10, "ResponsesReceived": 9},
    "ClientMTU": {"Start": 1500, "End": 1400},
}


class Recorder:
    def __init__(self, returncode=0, stdout="", stderr=""):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.args = None

    def __call__(self, args, **kw):
        self.args = args
        return subprocess.CompletedProcess(args, self.returncode, self.stdout, self.stderr)


@pytest.fixture
def run(monkeypatch):
    def install(**kw):
        rec = Recorder(**kw)
        monkeypatch.setattr(subprocess, "run", rec)
        return rec
    return install


def test_command_line(run):
    rec = run(returncode=1)
    p = DockerProber("client-1", docker_bin="docker")
    p.check("10.65.0.2", 8055, "udp",
            with_duration(5), with_send_len(100), with_recv_len(200),
            with_source_ip("10.65.0.9"), with_source_port(5555))
    assert rec.args == [
        "docker", "exec", "client-1",
        "/test-connection", "--protocol=udp",
        "--duration=5", "--sendlen=100", "--recvlen=200",
        "-", "10.65.0.2", "8055",
        "--source-ip=10.65.0.9", "--source-port=5555",
    ]


def test_nonzero_exit_is_no_connection(run):
    run(returncode=1, stdout="RESULT=" + json.dumps(RESULT) + "\n")
    assert DockerProber("c").check("10.65.0.2", 8055, "tcp") is None


def test_result_line_parsed(run):
    run(stdout="connecting...\nRESULT=" + json.dumps(RESULT) + "\ndone\n")
    res = DockerProber("c").check("10.65.0.2", 8055, "tcp")
    assert res.last_response.source_ip == "10.65.0.1"
    assert res.last_response.request.payload == "hello"
    assert res.stats.lost == 1
    assert res.stats.lost_percent == 10.0
    assert (res.client_mtu.start, res.client_mtu.end) == (1500, 1400)


def test_missing_result_line_is_no_connection(run):
    run(stdout="no result here\n")
    assert DockerProber("c").check("10.65.0.2", 8055, "tcp") is None


def test_garbled_result_is_contract_error(run):
    run(stdout="RESULT={not json\n")
    with pytest.raises(ProbeContractError):
        DockerProber("c").check("10.65.0.2", 8055, "tcp")


def test_workload_probes_from_its_own_container(run):
    rec = run(stdout="RESULT=" + json.dumps(RESULT) + "\n")
    w = Workload("client-1", "10.65.0.1", default_port=8055)
    assert w.can_connect_to("10.65.0.2", 8055, "tcp") is not None
    assert rec.args[2] == "client-1"
    assert w.source_ips() == ["10.65.0.1"]
    assert w.to_matcher().target_name == "client-1:8055"


def test_namespace_path_replaces_dash(run):
    rec = run(returncode=1)
    DockerProber("c", docker_bin="docker").check("10.65.0.2", 8055, "tcp", with_namespace_path("/var/run/netns/ns1"))
    assert rec.args[8:11] == ["/var/run/netns/ns1", "10.65.0.2", "8055"]
