"""Runtime settings, shared console and logging setup."""

import logging
import math
import os
from dataclasses import dataclass

from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from wolfcast.defs import DOOR_SPEED, PUSHWALL_SPEED, SCREENWIDTH, SCREENHEIGHT

console = Console()

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _env_number(name: str, default, cast=int, minimum=None):
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise SystemExit(f"Error: {name} must be a number, got {raw!r}")
    if minimum is not None and value < minimum:
        raise SystemExit(f"Error: {name} must be at least {minimum}, got {value}")
    return value


@dataclass
class Settings:
    data_dir: str = "data"
    extension: str = "WL6"
    palette: str = "wolf.pal"
    level: int = 0
    width: int = SCREENWIDTH
    height: int = SCREENHEIGHT
    fov_degrees: float = 60.0
    door_speed: float = DOOR_SPEED
    pushwall_speed: float = PUSHWALL_SPEED
    log_level: str = "INFO"

    @property
    def fov(self) -> float:
        return math.radians(self.fov_degrees)

    @classmethod
    def from_env(cls) -> "Settings":
        """Read settings from .env and the environment; bad values exit with a message."""
        load_dotenv()

        fov = _env_number("WOLFCAST_FOV", 60.0, float, 1.0)
        if fov >= 180.0:
            raise SystemExit(f"Error: WOLFCAST_FOV must be below 180, got {fov}")

        log_level = os.environ.get("WOLFCAST_LOG_LEVEL", "INFO").upper()
        if log_level not in LOG_LEVELS:
            raise SystemExit(f"Error: WOLFCAST_LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")

        return cls(
            data_dir=os.environ.get("WOLFCAST_DATA_DIR", "data"),
            extension=os.environ.get("WOLFCAST_EXTENSION", "WL6"),
            palette=os.environ.get("WOLFCAST_PALETTE", "wolf.pal"),
            level=_env_number("WOLFCAST_LEVEL", 0, int, 0),
            width=_env_number("WOLFCAST_WIDTH", SCREENWIDTH, int, 1),
            height=_env_number("WOLFCAST_HEIGHT", SCREENHEIGHT, int, 1),
            fov_degrees=fov,
            door_speed=_env_number("WOLFCAST_DOOR_SPEED", DOOR_SPEED, float, 0.0),
            pushwall_speed=_env_number("WOLFCAST_PUSHWALL_SPEED", PUSHWALL_SPEED, float, 0.0),
            log_level=log_level,
        )


def setup_logging(level: str = "INFO") -> None:
    """Route every wolfcast logger through rich on the shared console."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )
