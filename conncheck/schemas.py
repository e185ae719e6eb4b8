# conncheck/schemas.py
import json
import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal

ProtocolName = Literal["tcp", "udp", "sctp", "udp-recvmsg", "udp-noconn"]


@dataclass
class Request:
    timestamp: str | None = None
    id: str = ""
    payload: str = ""
    send_size: int = 0
    response_size: int = 0

    @classmethod
    def new(cls, payload: str) -> "Request":
        return cls(
            timestamp=datetime.now(timezone.utc).isoformat(),
            id=str(uuid.uuid4()),
            payload=payload,
        )

    def __eq__(self, other):
        if not isinstance(other, Request):
            return NotImplemented
        return self.id == other.id and self.timestamp == other.timestamp

    @classmethod
    def from_dict(cls, d: dict) -> "Request":
        return cls(
            timestamp=d.get("Timestamp"),
            id=d.get("ID", ""),
            payload=d.get("Payload", ""),
            send_size=d.get("SendSize", 0),
            response_size=d.get("ResponseSize", 0),
        )

    def to_dict(self) -> dict:
        return {
            "Timestamp": self.timestamp,
            "ID": self.id,
            "Payload": self.payload,
            "SendSize": self.send_size,
            "ResponseSize": self.response_size,
        }


@dataclass
class Response:
    timestamp: str | None = None
    source_addr: str = ""
    server_addr: str = ""
    request: Request = field(default_factory=Request)

    @property
    def source_ip(self) -> str:
        """source_addr without the port; handles "[v6]:port" as well as "ip:port"."""
        addr = self.source_addr
        if addr.startswith("["):
            return addr[1:].split("]", 1)[0]
        return addr.split(":")[0]

    @classmethod
    def from_dict(cls, d: dict) -> "Response":
        return cls(
            timestamp=d.get("Timestamp"),
            source_addr=d.get("SourceAddr", ""),
            server_addr=d.get("ServerAddr", ""),
            request=Request.from_dict(d.get("Request") or {}),
        )

    def to_dict(self) -> dict:
        return {
            "Timestamp": self.timestamp,
            "SourceAddr": self.source_addr,
            "ServerAddr": self.server_addr,
            "Request": self.request.to_dict(),
        }


@dataclass
class Stats:
    requests_sent: int = 0
    responses_received: int = 0

    @property
    def lost(self) -> int:
        return self.requests_sent - self.responses_received

    @property
    def lost_percent(self) -> float:
        # NaN when nothing was sent: a loss window must always send something
        if self.requests_sent == 0:
            return math.nan
        return self.lost * 100.0 / self.requests_sent


@dataclass
class MTUPair:
    """MTU recorded before and after the data transfer."""
    start: int = 0
    end: int = 0


@dataclass
class Result:
    last_response: Response = field(default_factory=Response)
    stats: Stats = field(default_factory=Stats)
    client_mtu: MTUPair = field(default_factory=MTUPair)

    @classmethod
    def from_dict(cls, d: dict) -> "Result":
        stats = d.get("Stats") or {}
        mtu = d.get("ClientMTU") or {}
        return cls(
            last_response=Response.from_dict(d.get("LastResponse") or {}),
            stats=Stats(
                requests_sent=stats.get("RequestsSent", 0),
                responses_received=stats.get("ResponsesReceived", 0),
            ),
            client_mtu=MTUPair(start=mtu.get("Start", 0), end=mtu.get("End", 0)),
        )

    @classmethod
    def from_json(cls, raw: str) -> "Result":
        obj = json.loads(raw)
        if not isinstance(obj, dict):
            raise ValueError(f"expected a JSON object, got {type(obj).__name__}")
        return cls.from_dict(obj)

    def to_dict(self) -> dict:
        return {
            "LastResponse": self.last_response.to_dict(),
            "Stats": {
                "RequestsSent": self.stats.requests_sent,
                "ResponsesReceived": self.stats.responses_received,
            },
            "ClientMTU": {"Start": self.client_mtu.start, "End": self.client_mtu.end},
        }
