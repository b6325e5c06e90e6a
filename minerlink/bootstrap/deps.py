import json
from functools import lru_cache

from pydantic import ValidationError

from minerlink.bootstrap.config.settings import MinerlinkConfig
from minerlink.core.connections.client import StratumClient
from minerlink.core.routing.dispatcher import RoutedDispatcher
from minerlink.infra.json_serializer import JsonSerializer
from minerlink.infra.line_parser import LineCommandParser


@lru_cache
def get_dispatcher() -> RoutedDispatcher:
    return RoutedDispatcher()


@lru_cache
def get_serializer() -> JsonSerializer:
    return JsonSerializer()


def get_client() -> StratumClient:
    """Build a new, unconnected client. Must run inside the event loop."""
    config = get_config()
    connection_config = config.client.to_connection_config()

    return StratumClient(
        parser=LineCommandParser(
            serializer=get_serializer(),
            max_buffer_size=connection_config.max_buffer_size
        ),
        dispatcher=get_dispatcher(),
        serializer=get_serializer(),
        config=connection_config,
    )


@lru_cache
def get_config() -> MinerlinkConfig:
    try:
        return MinerlinkConfig()  # type: ignore[call-arg]
    except FileNotFoundError as ex:
        raise SystemExit(f"Provide a correct configuration file path: {ex}")
    except ValidationError as ex:
        msg = ["Configuration validation failed:"]
        errs = json.loads(ex.json())
        for err in errs:
            msg.append(f"  {'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}")
        raise SystemExit("\n".join(msg))
