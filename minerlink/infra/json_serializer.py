import json
from typing import Any

from minerlink.core.ports.serializer import Serializer


class JsonSerializer(Serializer):
    """
    JSON implementation of the Serializer interface.

    Output is compact (no whitespace after separators) and keeps key order,
    so a request always encodes as `{"method":..,"id":..,"params":[..]}`.
    """
    def serialize(self, message: Any) -> bytes:
        return json.dumps(message, separators=(",", ":")).encode("utf-8")

    def deserialize(self, data: bytes) -> Any:
        return json.loads(data.decode("utf-8"))
