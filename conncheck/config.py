from dataclasses import dataclass

from conncheck.schemas import ProtocolName

@dataclass
class Settings:
    protocol: ProtocolName = "tcp"
    timeout_s: float = 10.0
    # at least this many attempts, even when the timeout has already passed
    min_attempts: int = 2
    check_snat: bool = False
    retries_disabled: bool = False
    reverse_direction: bool = False

    # probe tool wiring (DockerProber)
    docker_bin: str = "docker"
    test_connection_bin: str = "/test-connection"
