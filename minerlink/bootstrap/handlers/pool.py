import logging

from minerlink.bootstrap.deps import get_dispatcher
from minerlink.core.connections.connection import Connection

logger = logging.getLogger("bootstrap.handlers.pool")

dispatcher = get_dispatcher()


@dispatcher.command("mining.set_difficulty")
def set_difficulty(connection: Connection, *params) -> None:
    difficulty = params[0] if params else None
    logger.info(f"({connection.id}) Difficulty set to {difficulty}")


@dispatcher.command("mining.notify")
def notify(connection: Connection, *params) -> None:
    job_id = params[0] if params else None
    # job_id, prevhash, coinb1, coinb2, merkle_branch, version, nbits, ntime, clean_jobs
    clean_jobs = bool(params[8]) if len(params) > 8 else False
    logger.info(f"({connection.id}) New job {job_id} (clean_jobs={clean_jobs})")


@dispatcher.command("client.show_message")
def show_message(connection: Connection, message: str = "", *_) -> None:
    logger.info(f"({connection.id}) Pool message: {message}")


@dispatcher.command("client.reconnect")
def reconnect(connection: Connection, *params) -> None:
    logger.warning(f"({connection.id}) Pool asked to reconnect to {params}, not supported")
