"""
Centralized constants for EveryRow Make Toolkit.

Endpoints, file layout and Make.com identifiers should be defined here
to avoid duplication across modules.
"""

# App bundle layout
DEFINITION_SUFFIX = ".imljson"
BASE_FILE = "base.imljson"
COMMON_FILE = "common.imljson"
CONNECTIONS_DIR = "connections"
MODULES_DIR = "modules"
RPCS_DIR = "rpcs"

# Default API locations
DEFAULT_MAKE_BASE_URL = "https://us1.make.com/api"
DEFAULT_EVERYROW_BASE_URL = "https://app.everyrow.com/api"
DEFAULT_APP_VERSION = "1"
SDK_APPS_PATH = "/v2/sdk/apps"

# Content types accepted by the Make SDK API
JSON_CONTENT_TYPE = "application/json"
JSONC_CONTENT_TYPE = "application/jsonc"

# Make.com module type IDs
MODULE_TYPE_IDS = {
    "action": 4,
    "search": 9,
    "trigger": 1,
    "instant_trigger": 5,
    "responder": 11,
    "universal": 12,
}
DEFAULT_MODULE_TYPE = "action"

# Module definition key -> SDK section name
MODULE_SECTIONS = {
    "communication": "api",
    "parameters": "expect",
    "interface": "interface",
    "samples": "samples",
}
RPC_SECTIONS = {
    "communication": "api",
    "parameters": "parameters",
}

# Fields every module definition must carry
REQUIRED_MODULE_FIELDS = ("label", "type", "connection")

# Local connection references that map onto a connection label in Make
DEFAULT_CONNECTION_ALIASES = {"everyrow-api": "EveryRow API"}
DEFAULT_CONNECTION_TYPE = "basic"

# EveryRow task protocol
TASK_TYPE_CREATE_GROUP = "create_group"
TASK_TYPE_DEEP_RANK = "deep_rank"
RANK_RESPONSE_MODEL = "RankResponse"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"
SUCCESS_STATUS_CODES = (200, 201)

# Polling (linear, no backoff)
DEFAULT_POLL_ATTEMPTS = 30
DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_TIMEOUT = 30.0

# Module used by the rank smoke flow
RANK_MODULE_FILE = "startRankTask.imljson"
