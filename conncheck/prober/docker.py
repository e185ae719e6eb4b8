# conncheck/prober/docker.py
import logging
import re
import shutil
import subprocess

from conncheck.errors import ConfigurationError, ProbeContractError
from conncheck.prober.base import (
    CheckOption,
    CheckOptions,
    ConnectionSource,
    ConnectionTarget,
    apply_check_options,
)
from conncheck.prober.targets import Matcher, single_port
from conncheck.schemas import Result

logger = logging.getLogger(__name__)

DEFAULT_DOCKER_BIN = shutil.which("docker") or "docker"
TEST_CONNECTION_BIN = "/test-connection"

RESULT_RE = re.compile(r"RESULT=(.*)\n")


class DockerProber:
    """
    Runs the 'test-connection' binary inside a container via `docker exec` and turns its
    output into a Result. A failed exec (non-zero exit) means "could not connect" and gives None.
    """

    def __init__(self,
                 container_name: str,
                 docker_bin: str = DEFAULT_DOCKER_BIN,
                 binary: str = TEST_CONNECTION_BIN):
        self.container = container_name
        self.docker = docker_bin
        self.binary = binary

    def _build_cmd(self, ip: str, port, protocol: str, cmd: CheckOptions) -> list[str]:
        args = [
            self.docker, "exec", self.container,
            self.binary, f"--protocol={protocol}",
            f"--duration={int(cmd.duration_s)}",
            f"--sendlen={cmd.send_len}",
            f"--recvlen={cmd.recv_len}",
            cmd.ns_path, ip, str(port),
        ]
        if cmd.source_ip:
            args.append(f"--source-ip={cmd.source_ip}")
        if cmd.source_port:
            args.append(f"--source-port={cmd.source_port}")
        return args

    def _run_cmd(self, args: list[str]) -> subprocess.CompletedProcess:
        return subprocess.run(args, check=False, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True)

    def _parse_output(self, out: str) -> Result | None:
        m = RESULT_RE.search(out)
        if not m:
            return None
        try:
            return Result.from_json(m.group(1))
        except (ValueError, TypeError, AttributeError) as e:
            raise ProbeContractError(f"Failed to parse connection check response: {e}", output=out) from e

    def check(self, ip: str, port, protocol: str, *opts: CheckOption) -> Result | None:
        cmd = apply_check_options(opts)
        args = self._build_cmd(ip, port, protocol, cmd)
        logger.debug("Entering check(%s, %s, %s, %s, %s) in %s",
                     ip, port, protocol, cmd.send_len, cmd.recv_len, self.container)

        proc = self._run_cmd(args)
        logger.info("Connection test in %s to %s:%s (%s) exited %s\nstdout: %s\nstderr: %s",
                    self.container, ip, port, protocol, proc.returncode, proc.stdout, proc.stderr)

        if proc.returncode != 0:
            return None
        return self._parse_output(proc.stdout or "")


class Workload(ConnectionSource, ConnectionTarget):
    """A container that can both originate probes and be probed."""

    def __init__(self,
                 name: str,
                 ip: str,
                 default_port: int | None = None,
                 protocol: str | None = None,
                 prober: DockerProber | None = None):
        self.name = name
        self.ip = ip
        self.default_port = default_port
        self.protocol = protocol
        self.prober = prober or DockerProber(name)

    def __repr__(self):
        return f"Workload(name={self.name!r}, ip={self.ip!r})"

    def can_connect_to(self, ip: str, port: int, protocol: str, *opts: CheckOption) -> Result | None:
        return self.prober.check(ip, port, protocol, *opts)

    def source_name(self) -> str:
        return self.name

    def source_ips(self) -> list[str]:
        return [self.ip]

    def to_matcher(self, *explicit_ports: int) -> Matcher:
        port = single_port(explicit_ports, self.name)
        if port is None:
            port = self.default_port
        if port is None:
            raise ConfigurationError(f"Workload {self.name} has no default port; pass one explicitly")
        return Matcher(
            ip=self.ip,
            port=port,
            target_name=f"{self.name}:{port}",
            protocol=self.protocol,
        )
