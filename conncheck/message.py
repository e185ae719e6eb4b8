# conncheck/message.py
from conncheck.schemas import Request

CONNECTION_TYPE_STREAM = "stream"
CONNECTION_TYPE_PING = "ping"


class ConnConfig:
    """
    Framing for the payloads a probe tool sends: "<type>:<id>~<sequence>".
    Lets the receiving side tell which connection and which request a message belongs to.
    """

    def __init__(self, conn_type: str, conn_id: str):
        self.conn_type = conn_type
        self.conn_id = conn_id

    def _prefix(self) -> str:
        return f"{self.conn_type}:{self.conn_id}~"

    def get_test_message(self, sequence: int) -> Request:
        return Request.new(f"{self._prefix()}{sequence}")

    def get_test_message_sequence(self, msg: str) -> int:
        msg = msg.strip()
        prefix = self._prefix()
        if not msg.startswith(prefix):
            raise ValueError(f"invalid message prefix format: {msg}")

        seq_string = msg[len(prefix):]
        # plain non-negative decimal only
        if not (seq_string.isascii() and seq_string.isdigit()):
            raise ValueError(f"invalid message sequence format: {msg}")
        return int(seq_string)


def is_message_part_of_stream(msg: str) -> bool:
    return msg.strip().startswith(CONNECTION_TYPE_STREAM)
