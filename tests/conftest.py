import os

import pytest
import yaml
from typing import Generator

from minerlink.bootstrap.config.settings import MinerlinkConfig, TLSSettings
from minerlink.infra.json_serializer import JsonSerializer
from tests.fake.fake_transport import FakeTransport
from tests.helpers import FakeMinerlinkConfig
from tests.utils import generate_cert_pair, write_pem


@pytest.fixture
def serializer():
    return JsonSerializer()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture(scope="session")
def tls_files(tmp_path_factory):
    ca_cert, server_key, server_cert = generate_cert_pair()
    base = tmp_path_factory.mktemp("tls")

    write_pem(ca_cert, base / "ca.pem")
    write_pem(server_cert, base / "server.pem")
    write_pem(server_key, base / "server.key")

    return base / "ca.pem", base / "server.pem", base / "server.key"


@pytest.fixture(scope="session")
def config_file(tmp_path_factory, tls_files):
    cafile, _, _ = tls_files
    base = tmp_path_factory.mktemp("config")
    file = base / "minerlink.yaml"

    data = {
        "pool": {
            "host": "127.0.0.1",
            "port": 3333,
            "tls": {
                "cafile": str(cafile),
            },
        },
        "account": {
            "user": "worker1",
            "password": "secret",
        },
        "client": {
            "user_agent": "minerlink-test/0.1",
            "keepalive_interval": 60,
            "max_buffer_size": 4096,
        },
    }

    file.write_text(yaml.dump(data))
    return file


@pytest.fixture(scope="session")
def minerlink_config(config_file) -> Generator[MinerlinkConfig, None, None]:
    backup = os.environ.copy()

    try:
        os.environ["TEST_MINERLINKCONFIG"] = str(config_file)
        yield FakeMinerlinkConfig()
    finally:
        os.environ.clear()
        os.environ.update(backup)


@pytest.fixture(scope="session")
def tls_settings(tls_files) -> TLSSettings:
    cafile, _, _ = tls_files
    return TLSSettings(cafile=cafile)
