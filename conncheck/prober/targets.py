# conncheck/prober/targets.py
from dataclasses import dataclass

from conncheck.errors import ConfigurationError
from conncheck.prober.base import ConnectionTarget
from conncheck.schemas import ProtocolName

DEFAULT_PROTOCOL = "tcp"


@dataclass(frozen=True)
class Matcher:
    ip: str
    port: int
    target_name: str
    # None means "whatever the checker uses"
    protocol: ProtocolName | None = None

    def resolve_protocol(self, default: str | None = None) -> str:
        return self.protocol or default or DEFAULT_PROTOCOL

    def match(self, source) -> bool:
        """One-shot probe, no retries."""
        return source.can_connect_to(self.ip, self.port, self.resolve_protocol()) is not None

    def failure_message(self, source) -> str:
        return (f"Expected {source.source_name()}\n\t{source!r}\n"
                f"to have connectivity to {self.target_name}\n\t{self.ip}:{self.port}\nbut it does not")

    def negated_failure_message(self, source) -> str:
        return (f"Expected {source.source_name()}\n\t{source!r}\n"
                f"not to have connectivity to {self.target_name}\n\t{self.ip}:{self.port}\nbut it does")


def single_port(explicit_ports, what: str) -> int | None:
    if len(explicit_ports) > 1:
        raise ConfigurationError(f"At most one explicit port allowed for {what}, got {list(explicit_ports)}")
    if not explicit_ports:
        return None
    port = int(explicit_ports[0])
    if not 0 < port < 65536:
        raise ConfigurationError(f"Port {port} out of range for {what}")
    return port


class TargetIP(str, ConnectionTarget):
    """A bare IP address; there is no sensible default port for it."""

    def to_matcher(self, *explicit_ports: int) -> Matcher:
        port = single_port(explicit_ports, str(self))
        if port is None:
            raise ConfigurationError("Explicit port needed with IP as a connectivity target")
        return Matcher(
            ip=str(self),
            port=port,
            target_name=f"{self}:{port}",
        )


def have_connectivity_to(target: ConnectionTarget, *explicit_ports: int) -> Matcher:
    return target.to_matcher(*explicit_ports)
