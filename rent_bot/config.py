from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple

from dotenv import load_dotenv

DEFAULT_PRESET_AMOUNTS: Tuple[int, ...] = (50_000, 100_000)


class AdminConfigError(RuntimeError):
    """Raised when the administrator configuration cannot be used."""


@dataclass(slots=True)
class BotConfig:
    """Process level settings taken from the environment."""

    token: str
    users_path: Path = field(default=Path("data/users.json"))
    admin_config_path: Path = field(default=Path("admin-config.json"))
    log_level: str = "INFO"

    @classmethod
    def load(cls, env_path: str | os.PathLike[str] | None = ".env") -> "BotConfig":
        """Load configuration from environment variables."""
        if env_path is not None:
            load_dotenv(env_path)

        token = os.getenv("BOT_TOKEN")
        if not token:
            raise RuntimeError(
                "BOT_TOKEN is not defined. Please add it to your .env file before running the bot."
            )

        users_path = Path(os.getenv("RENT_USERS_FILE", "data/users.json")).expanduser()
        admin_config_path = Path(os.getenv("RENT_ADMIN_CONFIG", "admin-config.json")).expanduser()
        log_level = os.getenv("RENT_LOG_LEVEL", "INFO").strip().upper() or "INFO"
        return cls(
            token=token.strip(),
            users_path=users_path,
            admin_config_path=admin_config_path,
            log_level=log_level,
        )


@dataclass(frozen=True, slots=True)
class AdminConfig:
    """Administrator identities and payment details, read once at start-up."""

    admins: Tuple[int, ...]
    card_number: str
    main_admin_username: str = ""
    preset_amounts: Tuple[int, ...] = DEFAULT_PRESET_AMOUNTS

    def is_admin(self, user_id: int) -> bool:
        return user_id in self.admins

    @classmethod
    def load(cls, path: str | os.PathLike[str]) -> "AdminConfig":
        path = Path(path)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise AdminConfigError(f"Admin config {path} does not exist") from exc
        except (OSError, ValueError) as exc:
            raise AdminConfigError(f"Admin config {path} is not valid JSON: {exc}") from exc
        return cls.from_dict(raw, source=str(path))

    @classmethod
    def from_dict(cls, raw: object, *, source: str = "<admin config>") -> "AdminConfig":
        if not isinstance(raw, dict):
            raise AdminConfigError(f"{source}: expected a JSON object")

        admins: List[int] = []
        for value in raw.get("admins") or []:
            try:
                admins.append(int(value))
            except (TypeError, ValueError) as exc:
                raise AdminConfigError(f"{source}: admin id {value!r} is not an integer") from exc
        if not admins:
            raise AdminConfigError(f"{source}: 'admins' must list at least one id")

        card_number = str(raw.get("cardNumber") or "").strip()
        if not card_number:
            raise AdminConfigError(f"{source}: 'cardNumber' is required")

        amounts_raw = raw.get("presetAmounts")
        if amounts_raw is None:
            preset_amounts = DEFAULT_PRESET_AMOUNTS
        else:
            try:
                preset_amounts = tuple(int(value) for value in amounts_raw)
            except (TypeError, ValueError) as exc:
                raise AdminConfigError(f"{source}: 'presetAmounts' must be integers") from exc
            if not preset_amounts or any(value <= 0 for value in preset_amounts):
                raise AdminConfigError(f"{source}: 'presetAmounts' must be positive")

        return cls(
            admins=tuple(dict.fromkeys(admins)),
            card_number=card_number,
            main_admin_username=str(raw.get("mainAdminUsername") or "").strip(),
            preset_amounts=preset_amounts,
        )


__all__ = ["AdminConfig", "AdminConfigError", "BotConfig", "DEFAULT_PRESET_AMOUNTS"]
