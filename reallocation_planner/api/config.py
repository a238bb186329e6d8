import os

DEFAULT_MAX_SOURCING_VAULTS = 50


def env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        return default
    return parsed if parsed >= 1 else default


def live_reads_enabled() -> bool:
    return env_flag("REALLOCATION_LIVE_READS_ENABLED", True)


def max_sourcing_vaults() -> int:
    return env_int("REALLOCATION_MAX_SOURCING_VAULTS", DEFAULT_MAX_SOURCING_VAULTS)
