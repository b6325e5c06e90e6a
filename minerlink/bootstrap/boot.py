import asyncio
import logging

from minerlink.bootstrap.config.loader import get_cli_args
from minerlink.bootstrap.config.settings import MinerlinkConfig
from minerlink.bootstrap.deps import get_client, get_config
from minerlink.core.helpers.utils import shutdown_event, setup_logging, scan
from minerlink.core.models.state import ConnectionEvent

logger = logging.getLogger("bootstrap.boot")


async def run(config: MinerlinkConfig) -> None:
    """
    Open a session with the configured pool and keep it until the pool
    hangs up or a shutdown signal arrives.
    """
    client = get_client()
    closed = asyncio.Event()

    client.on(ConnectionEvent.END, lambda _: closed.set())
    client.on(ConnectionEvent.ERROR, lambda _: closed.set())
    client.on(
        ConnectionEvent.PROTOCOL_ERROR,
        lambda error: logger.warning(f"Protocol error {error.code}: {error.message}")
    )

    address = (config.pool.host, config.pool.port)
    await client.connect(address, ssl_ctx=config.get_client_ssl_ctx())
    logger.info(f"Connected to {address[0]}:{address[1]} from {client.address()}")

    with shutdown_event(asyncio.get_running_loop()) as stop_event:
        try:
            await client.subscribe(config.client.user_agent)
            await client.authorize(config.account.user, config.account.password)

            waiters = [
                asyncio.ensure_future(stop_event.wait()),
                asyncio.ensure_future(closed.wait()),
            ]
            _, pending = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
            for waiter in pending:
                waiter.cancel()

            if closed.is_set():
                logger.warning("Pool closed the connection")
        finally:
            client.close()


@scan("minerlink.bootstrap.handlers")
def main():
    cli = get_cli_args()
    setup_logging(cli.log_level)
    config = get_config()

    try:
        asyncio.run(run(config))
    except KeyboardInterrupt:
        pass
