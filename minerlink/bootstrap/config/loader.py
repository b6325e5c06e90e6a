import argparse
import os
from functools import lru_cache
from pathlib import Path


@lru_cache
def get_cli_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="minerlink",
        description=(
            "Connect to a Stratum pool.\n\n"
            "Subscribes, authorizes the configured worker and logs the "
            "difficulty and job notifications pushed by the pool."
        ),
        formatter_class=argparse.RawTextHelpFormatter
    )

    parser.add_argument(
        "-c", "--config",
        type=str,
        help="Path to a minerlink configuration file"
    )

    parser.add_argument(
        "-l", "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help=(
            "Logging verbosity.\n"
            "Choose among: DEBUG, INFO, WARNING, ERROR, CRITICAL.\n\n"
            "DEBUG    → every line sent and received.\n"
            "INFO     → session milestones and notifications (default).\n"
            "WARNING  → only warnings and errors.\n"
            "ERROR    → only errors.\n"
            "CRITICAL → only critical failures.\n\n"
            "Example:\n"
            "  --log-level DEBUG"
        ),
    )

    return parser.parse_args()


@lru_cache
def get_configfile() -> Path:
    args = get_cli_args()

    # Priority: CLI > ENV > default file in current working directory
    raw = args.config or os.getenv("MINERLINKCONFIG")

    if raw is None:
        file = Path.cwd() / "minerlink.yaml"
    else:
        file = Path(raw)

    if not file.is_file():
        raise SystemExit(
            f"[config] Configuration file not found: '{file}'.\n"
            "  - Use --config <file.yaml>\n"
            "  - Or set the MINERLINKCONFIG environment variable\n"
            "  - Or place a 'minerlink.yaml' file in the current working directory."
        )

    return file
