# conncheck/prober/base.py
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Callable

from conncheck.schemas import Result


@dataclass(frozen=True)
class CheckOptions:
    ns_path: str = "-"
    duration_s: float = 0
    send_len: int = 0
    recv_len: int = 0
    source_ip: str = ""
    source_port: str = ""


CheckOption = Callable[[CheckOptions], CheckOptions]


def apply_check_options(opts) -> CheckOptions:
    cmd = CheckOptions()
    for opt in opts:
        cmd = opt(cmd)
    return cmd


def with_source_ip(ip: str) -> CheckOption:
    return lambda c: replace(c, source_ip=ip)


def with_source_port(port) -> CheckOption:
    return lambda c: replace(c, source_port=str(port))


def with_namespace_path(ns_path: str) -> CheckOption:
    return lambda c: replace(c, ns_path=ns_path)


def with_duration(duration_s: float) -> CheckOption:
    return lambda c: replace(c, duration_s=duration_s)


def with_send_len(n: int) -> CheckOption:
    return lambda c: replace(c, send_len=n)


def with_recv_len(n: int) -> CheckOption:
    return lambda c: replace(c, recv_len=n)


class ConnectionSource(ABC):
    """Something a probe can be sent *from*."""

    @abstractmethod
    def can_connect_to(self, ip: str, port: int, protocol: str, *opts: CheckOption) -> Result | None:
        """Probe ip:port once; return the Result, or None if no connection could be made."""
        raise NotImplementedError

    @abstractmethod
    def source_name(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def source_ips(self) -> list[str]:
        raise NotImplementedError


class ConnectionTarget(ABC):
    """Something a probe can be sent *to*."""

    @abstractmethod
    def to_matcher(self, *explicit_ports: int):
        """Resolve to exactly one conncheck.prober.targets.Matcher."""
        raise NotImplementedError
