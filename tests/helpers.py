import os
from unittest.mock import Mock

from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, YamlConfigSettingsSource

from minerlink.bootstrap.config.settings import MinerlinkConfig
from minerlink.core.connections.client import StratumClient
from minerlink.core.routing.dispatcher import RoutedDispatcher
from minerlink.infra.json_serializer import JsonSerializer
from minerlink.infra.line_parser import LineCommandParser
from tests.fake.fake_transport import FakeTransport


class FakeMinerlinkConfig(MinerlinkConfig, BaseSettings):
    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (YamlConfigSettingsSource(settings_cls, yaml_file=os.environ["TEST_MINERLINKCONFIG"]),)


def mock_dispatcher() -> Mock:
    dispatcher = Mock(spec=RoutedDispatcher)
    dispatcher.process = Mock(return_value=None)
    return dispatcher


def make_client(
    transport: FakeTransport | None = None,
    dispatcher=None,
    is_server: bool = False,
    max_buffer_size: int = 1024 * 1024,
) -> StratumClient:
    """
    Build a StratumClient wired to `transport`. Must be called from a
    running event loop.
    """
    serializer = JsonSerializer()
    client = StratumClient(
        parser=LineCommandParser(serializer, max_buffer_size=max_buffer_size),
        dispatcher=dispatcher if dispatcher is not None else RoutedDispatcher(),
        serializer=serializer,
        is_server=is_server,
    )
    if transport is not None:
        client.socket.connection_made(transport)
    return client
