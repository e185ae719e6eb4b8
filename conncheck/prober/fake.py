# conncheck/prober/fake.py
import threading
import time
from collections import deque

from conncheck.errors import ConfigurationError
from conncheck.prober.base import ConnectionSource, ConnectionTarget, apply_check_options
from conncheck.prober.targets import Matcher, single_port
from conncheck.schemas import Response, Result


def reply_from(source_addr: str, mtu=None, sent: int = 0, received: int = 0) -> Result:
    """Shorthand for building a successful Result in scripts."""
    r = Result(last_response=Response(source_addr=source_addr))
    if mtu is not None:
        r.client_mtu.start, r.client_mtu.end = mtu
    r.stats.requests_sent = sent
    r.stats.responses_received = received
    return r


class FakeSource(ConnectionSource):
    """
    script: dict[(ip, port)] -> list of Result-or-None, one popped per probe.
    When nothing is scripted for a target, `default` is returned (None = unreachable).
    delays: dict[(ip, port)] -> seconds to sleep before answering (to stagger completion order).
    Every probe is recorded in `calls` as (ip, port, protocol, CheckOptions).
    """

    def __init__(self, name: str, ips=None, script=None, default: Result | None = None, delays=None):
        self.name = name
        self.ips = list(ips or [])
        self.default = default
        self.delays = dict(delays or {})
        self.script = {}
        if script:
            for k, v in script.items():
                self.script[k] = deque(v)
        self.calls = []
        self._lock = threading.Lock()

    def __repr__(self):
        return f"{type(self).__name__}({self.name!r})"

    def can_connect_to(self, ip: str, port: int, protocol: str, *opts) -> Result | None:
        key = (ip, port)
        delay = self.delays.get(key)
        if delay:
            time.sleep(delay)

        with self._lock:
            self.calls.append((ip, port, protocol, apply_check_options(opts)))
            dq = self.script.get(key)
            if dq:
                nxt = dq.popleft()
                if isinstance(nxt, BaseException):
                    raise nxt
                return nxt
        return self.default

    def source_name(self) -> str:
        return self.name

    def source_ips(self) -> list[str]:
        return list(self.ips)


class FakeWorkload(FakeSource, ConnectionTarget):
    """Scripted source that can also be used as a target."""

    def __init__(self, name: str, ip: str, default_port: int | None = None, protocol: str | None = None,
                 **kw):
        super().__init__(name, ips=[ip], **kw)
        self.ip = ip
        self.default_port = default_port
        self.protocol = protocol

    def to_matcher(self, *explicit_ports: int) -> Matcher:
        port = single_port(explicit_ports, self.name)
        if port is None:
            port = self.default_port
        if port is None:
            raise ConfigurationError(f"Workload {self.name} has no default port; pass one explicitly")
        return Matcher(ip=self.ip, port=port, target_name=f"{self.name}:{port}", protocol=self.protocol)
