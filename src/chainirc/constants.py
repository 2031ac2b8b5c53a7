"""Application-wide constants: identity, default paths, chain parameters."""

APP_NAME = "chainirc"
DISPLAY_NAME = "ChainIRC"

# Paths (mapped with path_utils.map_path before use)
USER_DATA_DIR = f"~/.{APP_NAME}"
DEFAULT_LOGS_DIR = f"{USER_DATA_DIR}/logs"
DEFAULT_PROFILE_PATH = f"{USER_DATA_DIR}/profile.json"
LOG_FILE_EXTENSION = ".log"

DATETIME_FORMAT_FILENAME = "%Y-%m-%d_%H-%M-%S"
DATETIME_FORMAT_DISPLAY = "%Y-%m-%d %H:%M:%S"

# Chain: Monad testnet, ERC-4337 v0.7 entry point
DEFAULT_CHAIN_ID = 10143
NATIVE_TOKEN_SYMBOL = "MON"
NATIVE_TOKEN_DECIMALS = 18
ENTRY_POINT_ADDRESS = "0x0000000071727De22E5E9d8BAf0edAc6f37da032"

# Chat vocabulary
CHANNEL_PREFIX = "#"
USERNAME_PATTERN = r"^[A-Za-z0-9_-]{3,20}$"
DEFAULT_SESSION_VALIDITY_MINUTES = 30
RECENT_MESSAGE_LIMIT = 10

BORDERLINE_CHAR = "═"
BORDERLINE_WIDTH = 55
